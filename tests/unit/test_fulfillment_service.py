from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from storefront.errors import UpstreamUnavailable
from storefront.fulfillment import service as fulfillment_service
from storefront.orders.models import Order, OrderItem, ShippingAddress


def _order(items=None, **kwargs) -> Order:
    data = dict(
        stripe_session_id="cs_test_abc12345",
        customer_email="player1@example.com",
        customer_name="Player One",
        customer_phone="+15555550100",
        total_amount=Decimal("50.00"),
        currency="usd",
        payment_status="paid",
        items=items if items is not None else [
            OrderItem(product_id="3", product_name="Hoodie - L", sync_variant_id=5, quantity=1, price=Decimal("45.00")),
            OrderItem(product_id="2", product_name="Stickers", sync_variant_id=2, quantity=2, price=Decimal("2.50")),
        ],
        shipping_address=ShippingAddress(
            name="Player One", address1="1 Arcade Way", city="Austin", state_code="TX",
            country_code="US", zip="78701", email="player1@example.com",
        ),
    )
    data.update(kwargs)
    return Order(**data)

@pytest.fixture
def printful(monkeypatch):
    monkeypatch.setattr("storefront.config.PRINTFUL_API_TOKEN", "tok_test")
    client = MagicMock()
    client.create_order.return_value = {"id": 98765, "status": "draft"}
    monkeypatch.setattr("storefront.infra.printful_client.get_printful_client", lambda: client)
    return client


def test_build_printful_order_payload():
    payload = fulfillment_service.build_printful_order(_order())

    assert payload["external_id"] == "cs_test_abc12345"
    assert payload["recipient"]["state_name"] == "TX"
    assert payload["recipient"]["country_name"] == "US"
    assert payload["recipient"]["phone"] == "+15555550100"
    assert payload["items"] == [
        {"sync_variant_id": 5, "quantity": 1, "price": "45.00", "retail_price": "45.00"},
        {"sync_variant_id": 2, "quantity": 2, "price": "2.50", "retail_price": "2.50"},
    ]
    costs = payload["retail_costs"]
    assert costs["currency"] == "USD"
    assert costs["total"] == "50.00"
    assert costs["shipping"] == costs["tax"] == costs["vat"] == costs["discount"] == "0.00"


def test_items_without_variant_are_dropped(printful):
    items = [
        OrderItem(product_name="Mystery", sync_variant_id=None, quantity=1, price=Decimal("3.00")),
        OrderItem(product_name="Hoodie", sync_variant_id=5, quantity=1, price=Decimal("45.00")),
    ]
    fulfillment_service.submit_order(_order(items=items))

    sent = printful.create_order.call_args.args[0]
    assert [i["sync_variant_id"] for i in sent["items"]] == [5]


def test_no_valid_items_means_no_provider_call(printful):
    items = [OrderItem(product_name="Mystery", sync_variant_id=None, quantity=1, price=Decimal("3.00"))]

    assert fulfillment_service.submit_order(_order(items=items)) is None
    printful.create_order.assert_not_called()


def test_submit_order_returns_printful_id(printful):
    assert fulfillment_service.submit_order(_order()) == "98765"
    printful.create_order.assert_called_once()


def test_submit_order_skipped_when_not_configured(monkeypatch):
    monkeypatch.setattr("storefront.config.PRINTFUL_API_TOKEN", "")
    factory = MagicMock()
    monkeypatch.setattr("storefront.infra.printful_client.get_printful_client", factory)

    assert fulfillment_service.submit_order(_order()) is None
    factory.assert_not_called()


def test_provider_error_is_swallowed(printful):
    printful.create_order.side_effect = UpstreamUnavailable("Printful API error: 400 - bad recipient")
    assert fulfillment_service.submit_order(_order()) is None


def test_unexpected_error_is_swallowed(printful):
    printful.create_order.side_effect = KeyError("id")
    assert fulfillment_service.submit_order(_order()) is None


def test_response_without_id_is_a_failure(printful):
    printful.create_order.return_value = {"status": "draft"}
    assert fulfillment_service.submit_order(_order()) is None
