"""Couche service du fulfillment Printful.
Rôles:
- Traduire une commande payée en commande Printful (recipient, items, retail_costs).
- Soumettre la commande; un échec est journalisé et n'annule jamais le paiement ni la commande.
Règles:
- Une ligne sans sync_variant_id numérique est ignorée (warning).
- Aucune ligne valide: pas d'appel Printful, la commande reste sans printful_order_id (suivi manuel).
- Frais de port / taxes à "0.00": Printful recalcule les montants qui font foi.
"""
from typing import Any, Dict, List, Optional
import logging

from storefront import config
from storefront.errors import FulfillmentSubmissionError, UpstreamUnavailable
from storefront.infra import printful_client
from storefront.orders.models import Order

logger = logging.getLogger(__name__)

ZERO = "0.00"

def _valid_variant_id(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        variant_id = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return variant_id if variant_id > 0 else None

def build_printful_items(order: Order) -> List[Dict[str, Any]]:
    items: List[Dict[str, Any]] = []
    for item in order.items:
        variant_id = _valid_variant_id(item.sync_variant_id)
        if variant_id is None:
            logger.warning(
                "fulfillment skipping item %r of session %s: missing or invalid sync_variant_id",
                item.product_name, order.stripe_session_id,
            )
            continue
        price = f"{item.price:.2f}"
        items.append({
            "sync_variant_id": variant_id,
            "quantity": item.quantity,
            "price": price,
            "retail_price": price,
        })
    return items

def build_printful_order(order: Order) -> Optional[Dict[str, Any]]:
    """Payload POST /orders, ou None si aucune ligne n'est soumissible."""
    items = build_printful_items(order)
    if not items:
        return None
    address = order.shipping_address
    total = f"{order.total_amount:.2f}"
    return {
        "external_id": order.stripe_session_id,
        "shipping": "STANDARD",
        "recipient": {
            "name": address.name,
            "address1": address.address1,
            "address2": address.address2,
            "city": address.city,
            "state_code": address.state_code,
            "state_name": address.state_code,
            "country_code": address.country_code,
            "country_name": address.country_code,
            "zip": address.zip,
            "phone": address.phone or (order.customer_phone or ""),
            "email": address.email or order.customer_email,
        },
        "items": items,
        "retail_costs": {
            "currency": (order.currency or "usd").upper(),
            "subtotal": total,
            "discount": ZERO,
            "shipping": ZERO,
            "tax": ZERO,
            "vat": ZERO,
            "total": total,
        },
    }

def submit_order(order: Order) -> Optional[str]:
    """
    Soumet la commande à Printful et retourne l'identifiant de commande Printful.
    Retourne None (sans lever) si rien n'est soumissible, si Printful n'est pas configuré
    ou si la soumission échoue.
    """
    payload = build_printful_order(order)
    if payload is None:
        logger.warning("fulfillment no valid Printful items for session %s, manual follow-up required", order.stripe_session_id)
        return None
    if not config.printful_configured():
        logger.warning("fulfillment Printful not configured, session %s not submitted", order.stripe_session_id)
        return None

    try:
        try:
            result = printful_client.get_printful_client().create_order(payload)
        except UpstreamUnavailable as e:
            raise FulfillmentSubmissionError(str(e)) from e
        printful_order_id = result.get("id")
        if printful_order_id is None:
            raise FulfillmentSubmissionError("Printful response without order id")
    except FulfillmentSubmissionError:
        logger.exception("fulfillment submission failed for session %s, manual intervention required", order.stripe_session_id)
        return None
    except Exception:
        logger.exception("fulfillment unexpected error for session %s, manual intervention required", order.stripe_session_id)
        return None

    logger.info("fulfillment Printful order %s created for session %s", printful_order_id, order.stripe_session_id)
    return str(printful_order_id)
