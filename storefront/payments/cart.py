"""
Logique panier pure (pas de Stripe, pas de DB).
- Validation du panier soumis par le client (frontière non fiable).
- Construction des line_items / options de livraison / metadata Stripe.
"""
import json
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from storefront import config
from storefront.errors import ValidationError

MIN_QUANTITY = 1
MAX_QUANTITY = 99


class CartLineItem(BaseModel):
    """Ligne de panier telle que soumise par le navigateur (prix et nom non fiables)."""
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True, str_strip_whitespace=True)

    id: str
    name: str = Field(min_length=1)
    price: Decimal = Field(ge=0)
    quantity: int = Field(strict=True)
    image: Optional[str] = None
    sync_variant_id: Optional[int] = None


class CustomerInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: Optional[str] = None
    name: Optional[str] = None


# module storefront.payments.cart
def parse_cart(items: Any) -> List[CartLineItem]:
    """
    Valide le panier brut [{id, name, price, quantity, image?, sync_variant_id?}, ...].
    - Soulève ValidationError si le panier est vide ou si une ligne est mal formée
      (nom manquant, prix négatif, quantité absente ou non entière: ni booléen ni chaîne).
    - Les bornes de quantité [1, 99] sont contrôlées par la réconciliation des prix.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("No items provided for checkout")
    parsed: List[CartLineItem] = []
    errors: List[str] = []
    for index, raw in enumerate(items):
        try:
            item = CartLineItem.model_validate(raw)
        except PydanticValidationError as e:
            fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
            errors.append(f"Invalid item at position {index}: {', '.join(fields)}")
            continue
        if not item.id:
            errors.append(f"Invalid item at position {index}: id")
            continue
        parsed.append(item)
    if errors:
        raise ValidationError("Invalid cart", errors=errors)
    return parsed

def parse_customer_info(raw: Any) -> Optional[CustomerInfo]:
    if not isinstance(raw, dict):
        return None
    try:
        return CustomerInfo.model_validate(raw)
    except PydanticValidationError:
        return None

def to_minor_units(price: Decimal) -> int:
    """Prix décimal -> centimes entiers (arrondi au plus proche, demi vers le haut)."""
    return int((Decimal(price) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def to_line_items(items: List[CartLineItem]) -> List[Dict[str, Any]]:
    """
    Construit une ligne Stripe (price_data) par article.
    - unit_amount en centimes, devise config.STORE_CURRENCY.
    - product_data.metadata porte product_id et sync_variant_id pour le fulfillment.
    """
    line_items: List[Dict[str, Any]] = []
    for item in items:
        product_data: Dict[str, Any] = {
            "name": item.name,
            "metadata": {
                "product_id": item.id,
                "sync_variant_id": str(item.sync_variant_id) if item.sync_variant_id is not None else "",
            },
        }
        if item.image:
            product_data["images"] = [item.image]
        line_items.append({
            "quantity": item.quantity,
            "price_data": {
                "currency": config.STORE_CURRENCY,
                "unit_amount": to_minor_units(item.price),
                "product_data": product_data,
            },
        })
    return line_items

def _shipping_rate(display_name: str, amount: int, min_days: int, max_days: int) -> Dict[str, Any]:
    return {
        "shipping_rate_data": {
            "type": "fixed_amount",
            "fixed_amount": {"amount": amount, "currency": config.STORE_CURRENCY},
            "display_name": display_name,
            "delivery_estimate": {
                "minimum": {"unit": "business_day", "value": min_days},
                "maximum": {"unit": "business_day", "value": max_days},
            },
        },
    }

def shipping_options() -> List[Dict[str, Any]]:
    """Tarifs fixes: standard gratuit (5-7 jours ouvrés), express payant (2-3 jours ouvrés)."""
    return [
        _shipping_rate("Free shipping", 0, 5, 7),
        _shipping_rate("Express shipping", config.EXPRESS_SHIPPING_AMOUNT, 2, 3),
    ]

def make_metadata(items: List[CartLineItem], unverified: Optional[List[str]] = None) -> Dict[str, str]:
    """
    Métadonnées Stripe associées à la session (valeurs str uniquement).
    - unverified: ids dont le prix n'a pas pu être vérifié côté serveur -> revue manuelle.
    """
    metadata = {
        "source": "website",
        "item_count": str(len(items)),
    }
    if unverified:
        metadata["price_unverified"] = "true"
        # Limite Stripe: 500 caractères par valeur
        metadata["unverified_items"] = json.dumps(list(unverified))[:500]
    return metadata
