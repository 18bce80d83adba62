"""
Cas d'usage 'payments': orchestre cart, pricing et stripe_client.
"""
import logging
from typing import Any, Dict, List, Optional

from storefront import config
from storefront.errors import ValidationError
from . import cart as cart_logic
from . import pricing
from . import stripe_client
from .cart import CartLineItem, CustomerInfo

logger = logging.getLogger(__name__)

def create_checkout_session(
    items: List[CartLineItem],
    customer_info: Optional[CustomerInfo],
    success_url: str,
    cancel_url: str,
    metadata: Optional[Dict[str, str]] = None,
) -> Dict[str, str]:
    """
    Crée la session Stripe embarquée à partir d'un panier déjà réconcilié.
    - success_url devient le return_url de la session embarquée.
    - cancel_url n'est pas transmis: une session embarquée n'a pas de redirection d'annulation.
    Retour: {"session_id": ..., "client_secret": ...}
    """
    if not items:
        raise ValidationError("No items provided for checkout")
    session_metadata = dict(metadata or {})
    session_metadata["order_source"] = "website"
    session = stripe_client.create_session(
        line_items=cart_logic.to_line_items(items),
        return_url=success_url,
        metadata=session_metadata,
        shipping_options=cart_logic.shipping_options(),
        allowed_countries=config.SHIPPING_ALLOWED_COUNTRIES,
        customer_email=(customer_info.email if customer_info else None),
    )
    logger.info("payments.create_checkout_session id=%s items=%s cancel_url=%s", session.get("id"), len(items), cancel_url)
    return {"session_id": session.get("id"), "client_secret": session.get("client_secret")}

def process_checkout(
    raw_items: Any,
    raw_customer_info: Any,
    success_url: str,
    cancel_url: str,
) -> Dict[str, str]:
    """
    Parcours complet du checkout:
      1) valider le panier brut (ValidationError si mal formé)
      2) réconcilier les prix avec le catalogue (ValidationError si erreurs de quantité)
      3) créer la session Stripe et renvoyer le client_secret
    """
    items = cart_logic.parse_cart(raw_items)
    customer_info = cart_logic.parse_customer_info(raw_customer_info)

    result = pricing.reconcile(items)
    if result.errors:
        raise ValidationError("Invalid cart", errors=result.errors)

    metadata = cart_logic.make_metadata(result.validated, unverified=result.unverified)
    return create_checkout_session(result.validated, customer_info, success_url, cancel_url, metadata)

def get_session_status(session_id: str) -> Dict[str, Any]:
    """Résumé public d'une session (page de succès): statut, statut de paiement, email client."""
    session = stripe_client.get_session(session_id)
    return {
        "status": session.get("status"),
        "payment_status": session.get("payment_status"),
        "customer_email": (session.get("customer_details") or {}).get("email"),
    }
