"""
Traitement des événements Stripe (webhook) pour la feature 'orders'.
Rôles:
- Dispatcher les événements vérifiés vers le bon cas d'usage.
- Sur paiement confirmé: créer la commande une seule fois, la soumettre à Printful,
  puis envoyer la confirmation au client.
Règles:
- Chaque retour porte un "status": ignored, logged, duplicate, deferred, recorded, fulfilled.
- Seule une commande non persistée fait lever (OrderPersistenceError, erreur Stripe):
  le webhook répond 500 et Stripe relivre l'événement.
- Fulfillment et email ne font jamais échouer le traitement.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional
import logging

from storefront import config
from storefront.fulfillment import service as fulfillment_service
from storefront.notifications import email as notifications
from storefront.payments import stripe_client
from . import repository
from .models import Order, OrderItem, OrderStatus, ShippingAddress

logger = logging.getLogger(__name__)

COMPLETED_EVENTS = ("checkout.session.completed", "checkout.session.async_payment_succeeded")
LOGGED_EVENTS = ("checkout.session.expired", "payment_intent.succeeded", "payment_intent.payment_failed")
PAID_STATUSES = ("paid", "no_payment_required")

CENT = Decimal("0.01")


def _from_minor_units(amount: Any) -> Decimal:
    try:
        return (Decimal(int(amount or 0)) / 100).quantize(CENT, rounding=ROUND_HALF_UP)
    except (TypeError, ValueError, ArithmeticError):
        return Decimal("0.00")

def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}

def _shipping_details(session: Dict[str, Any]) -> Dict[str, Any]:
    """Adresse de livraison collectée (ancien champ shipping_details ou collected_information)."""
    details = _as_dict(session.get("shipping_details"))
    if not details:
        details = _as_dict(_as_dict(session.get("collected_information")).get("shipping_details"))
    return details

def _sync_variant_id(value: Any) -> Optional[int]:
    try:
        variant_id = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return variant_id if variant_id > 0 else None

def build_items(session: Dict[str, Any]) -> List[OrderItem]:
    """
    Lignes de commande depuis line_items (expandés).
    - La variante Printful est lue dans les métadonnées du produit Stripe (price.product).
    """
    items: List[OrderItem] = []
    for line in _as_dict(session.get("line_items")).get("data") or []:
        line = _as_dict(line)
        price = _as_dict(line.get("price"))
        product = _as_dict(price.get("product"))
        metadata = _as_dict(product.get("metadata"))
        quantity = int(line.get("quantity") or 1)
        if price.get("unit_amount") is not None:
            unit_price = _from_minor_units(price.get("unit_amount"))
        else:
            unit_price = (_from_minor_units(line.get("amount_total")) / quantity).quantize(CENT, rounding=ROUND_HALF_UP)
        items.append(OrderItem(
            product_id=str(metadata.get("product_id") or ""),
            product_name=line.get("description") or product.get("name") or "Item",
            sync_variant_id=_sync_variant_id(metadata.get("sync_variant_id")),
            quantity=quantity,
            price=unit_price,
        ))
    return items

def _with_all_line_items(session: Dict[str, Any]) -> Dict[str, Any]:
    """Complète line_items quand l'expansion s'est arrêtée à la première page (has_more)."""
    line_items = _as_dict(session.get("line_items"))
    if not line_items.get("has_more"):
        return session
    data = stripe_client.list_line_items(session["id"])
    logger.info("orders.line_items session %s paged, %s line items", session["id"], len(data))
    return {**session, "line_items": {**line_items, "data": data, "has_more": False}}

def build_order(session: Dict[str, Any]) -> Optional[Order]:
    """
    Construit la commande à partir d'une session Stripe complète.
    Retourne None si l'email client ou l'adresse de livraison manque (traitement différé).
    """
    session_id = session.get("id") or ""
    customer_details = _as_dict(session.get("customer_details"))
    customer = _as_dict(session.get("customer"))
    email = customer_details.get("email") or customer.get("email") or session.get("customer_email")
    if not email:
        logger.warning("orders.build_order session %s has no customer email, deferring", session_id)
        return None

    shipping = _shipping_details(session)
    address = _as_dict(shipping.get("address"))
    if not address or not address.get("line1"):
        logger.warning("orders.build_order session %s has no shipping address, deferring", session_id)
        return None

    name = shipping.get("name") or customer_details.get("name") or ""
    phone = customer_details.get("phone") or ""
    metadata = _as_dict(session.get("metadata"))

    return Order(
        stripe_session_id=session_id,
        customer_email=email,
        customer_name=name,
        customer_phone=phone or None,
        total_amount=_from_minor_units(session.get("amount_total")),
        currency=(session.get("currency") or config.STORE_CURRENCY).lower(),
        payment_status=session.get("payment_status") or "",
        status=OrderStatus.PENDING,
        needs_review=(metadata.get("price_unverified") == "true"),
        items=build_items(session),
        shipping_address=ShippingAddress(
            name=name,
            address1=address.get("line1") or "",
            address2=address.get("line2") or "",
            city=address.get("city") or "",
            state_code=address.get("state") or "",
            country_code=address.get("country") or "",
            zip=address.get("postal_code") or "",
            phone=phone,
            email=email,
        ),
    )

# module storefront.orders.service
def handle_completed_session(session: Dict[str, Any]) -> Dict[str, Any]:
    """
    Paiement confirmé pour une session Checkout.
      1) doublon si une commande existe déjà pour cette session
      2) différé si le paiement n'est pas encore encaissé
      3) relecture de la session avec expansions, construction de la commande
      4) création atomique (create_order_once), puis fulfillment et email
    """
    session_id = session.get("id")
    if not session_id:
        logger.warning("orders.handle_completed_session event without session id")
        return {"status": "ignored"}

    existing = repository.get_order_by_session_id(session_id)
    if existing:
        logger.info("orders.handle_completed_session session %s already recorded (order %s)", session_id, existing.get("id"))
        return {"status": "duplicate", "order_id": existing.get("id")}

    if session.get("payment_status") not in PAID_STATUSES:
        logger.info("orders.handle_completed_session session %s payment_status=%s, deferring", session_id, session.get("payment_status"))
        return {"status": "deferred"}

    full_session = stripe_client.get_session(session_id, expand=stripe_client.SESSION_EXPAND)
    full_session = _with_all_line_items(full_session)
    order = build_order(full_session)
    if order is None:
        return {"status": "deferred"}

    created = repository.create_order(order)
    if not created["created"]:
        logger.info("orders.handle_completed_session concurrent duplicate for session %s", session_id)
        return {"status": "duplicate", "order_id": created["id"]}
    logger.info("orders.handle_completed_session order %s recorded for session %s", created["id"], session_id)
    if order.needs_review:
        logger.warning("orders.handle_completed_session order %s has unverified prices, review required", created["id"])

    status = "recorded"
    printful_order_id = fulfillment_service.submit_order(order)
    if printful_order_id:
        if not repository.mark_fulfillment_submitted(session_id, printful_order_id):
            logger.warning(
                "orders.handle_completed_session printful order %s not saved on session %s, reconcile manually",
                printful_order_id, session_id,
            )
        order.printful_order_id = printful_order_id
        order.status = OrderStatus.PROCESSING
        status = "fulfilled"

    notification = notifications.send_order_confirmation(order)
    if not notification.success:
        logger.warning("orders.handle_completed_session confirmation not sent for session %s: %s", session_id, notification.error)

    return {
        "status": status,
        "order_id": created["id"],
        "printful_order_id": printful_order_id,
        "email_sent": notification.success,
    }

def handle_event(event: Dict[str, Any]) -> Dict[str, Any]:
    """Dispatch d'un événement Stripe déjà vérifié."""
    event_type = event.get("type") or ""
    obj = _as_dict(_as_dict(event.get("data")).get("object"))

    if event_type in COMPLETED_EVENTS:
        return handle_completed_session(obj)
    if event_type in LOGGED_EVENTS:
        logger.info("orders.handle_event %s for %s", event_type, obj.get("id"))
        return {"status": "logged"}
    logger.debug("orders.handle_event unhandled event type %s", event_type)
    return {"status": "ignored"}
