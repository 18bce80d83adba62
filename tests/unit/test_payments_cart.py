import json
from decimal import Decimal

import pytest

from storefront.errors import ValidationError
from storefront.payments.cart import (
    CartLineItem,
    make_metadata,
    parse_cart,
    parse_customer_info,
    shipping_options,
    to_line_items,
    to_minor_units,
)


def test_parse_cart_coerces_client_payload():
    items = parse_cart([
        {"id": 5, "name": " Retro Hoodie ", "price": 45, "quantity": 2, "sync_variant_id": "501"},
    ])
    item = items[0]
    assert item.id == "5"
    assert item.name == "Retro Hoodie"
    assert item.price == Decimal("45")
    assert item.quantity == 2
    assert item.sync_variant_id == 501


@pytest.mark.parametrize("raw", [None, [], {}, "cart"])
def test_parse_cart_empty_or_not_a_list(raw):
    with pytest.raises(ValidationError):
        parse_cart(raw)


def test_parse_cart_reports_each_invalid_line():
    with pytest.raises(ValidationError) as exc:
        parse_cart([
            {"id": "1", "name": "Tee", "price": 10, "quantity": 1},
            {"id": "2", "name": "", "price": 10, "quantity": 1},
            {"id": "3", "name": "Cap", "price": -1, "quantity": 1},
            {"id": "4", "name": "Mug", "price": 10},
            {"id": "5", "name": "Pin", "price": 3, "quantity": True},
            {"id": "6", "name": "Sticker", "price": 3, "quantity": "2"},
        ])
    errors = exc.value.errors
    assert len(errors) == 5
    assert "position 1" in errors[0] and "name" in errors[0]
    assert "position 2" in errors[1] and "price" in errors[1]
    assert "position 3" in errors[2] and "quantity" in errors[2]
    # Ni booléen ni chaîne: la quantité doit être un entier JSON
    assert "position 4" in errors[3] and "quantity" in errors[3]
    assert "position 5" in errors[4] and "quantity" in errors[4]


def test_parse_customer_info_ignores_garbage():
    assert parse_customer_info("nope") is None
    info = parse_customer_info({"email": "a@b.co", "name": "A", "extra": 1})
    assert info.email == "a@b.co"


@pytest.mark.parametrize("price, cents", [
    (Decimal("24.99"), 2499),
    (Decimal("0.005"), 1),
    (Decimal("10"), 1000),
    (Decimal("2.675"), 268),
])
def test_to_minor_units_rounds_half_up(price, cents):
    assert to_minor_units(price) == cents


def test_to_line_items_carries_fulfillment_metadata():
    items = [
        CartLineItem(id="3", name="Hoodie", price=Decimal("45.00"), quantity=1, image="https://img/h.png", sync_variant_id=501),
        CartLineItem(id="2", name="Stickers", price=Decimal("2.50"), quantity=4),
    ]
    line_items = to_line_items(items)

    hoodie, stickers = line_items
    assert hoodie["quantity"] == 1
    assert hoodie["price_data"]["unit_amount"] == 4500
    assert hoodie["price_data"]["currency"] == "usd"
    assert hoodie["price_data"]["product_data"]["images"] == ["https://img/h.png"]
    assert hoodie["price_data"]["product_data"]["metadata"] == {"product_id": "3", "sync_variant_id": "501"}
    assert stickers["price_data"]["unit_amount"] == 250
    assert "images" not in stickers["price_data"]["product_data"]
    assert stickers["price_data"]["product_data"]["metadata"]["sync_variant_id"] == ""


def test_shipping_options_free_and_express():
    free, express = shipping_options()
    assert free["shipping_rate_data"]["fixed_amount"]["amount"] == 0
    assert free["shipping_rate_data"]["delivery_estimate"]["minimum"]["value"] == 5
    assert express["shipping_rate_data"]["fixed_amount"]["amount"] == 999
    assert express["shipping_rate_data"]["delivery_estimate"]["maximum"]["value"] == 3


def test_make_metadata_flags_unverified_items():
    items = [CartLineItem(id="9", name="Mystery", price=Decimal("1"), quantity=1)]
    assert make_metadata(items) == {"source": "website", "item_count": "1"}

    flagged = make_metadata(items, unverified=["9"])
    assert flagged["price_unverified"] == "true"
    assert json.loads(flagged["unverified_items"]) == ["9"]
    assert all(isinstance(v, str) for v in flagged.values())
