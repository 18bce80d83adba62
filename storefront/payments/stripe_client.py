"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
"""
import logging
from typing import Any, Dict, List, Optional

import stripe
from fastapi import Request

from storefront import config
from storefront.errors import AuthenticityError, PaymentProcessorError

logger = logging.getLogger(__name__)

# Expansions nécessaires au fulfillment (variant Printful portée par le produit Stripe)
SESSION_EXPAND = ["line_items", "line_items.data.price.product", "customer", "payment_intent"]
LINE_ITEMS_PAGE_SIZE = 100

# module storefront.payments.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY et les retries réseau du SDK.
    - L'absence de clé est bloquante au démarrage (voir lifespan).
    """
    if config.STRIPE_SECRET_KEY:
        stripe.api_key = config.STRIPE_SECRET_KEY
    stripe.max_network_retries = config.STRIPE_MAX_NETWORK_RETRIES
    return stripe

def to_dict(obj: Any) -> Dict[str, Any]:
    """Convertit un StripeObject (ou un dict) en dict Python récursif."""
    if obj is None:
        return {}
    recursive = getattr(obj, "to_dict_recursive", None)
    if callable(recursive):
        return recursive()
    as_dict = getattr(obj, "to_dict", None)
    if callable(as_dict):
        return as_dict()
    return dict(obj)

def create_session(
    *,
    line_items: List[Dict[str, Any]],
    return_url: str,
    metadata: Dict[str, str],
    shipping_options: List[Dict[str, Any]],
    allowed_countries: List[str],
    customer_email: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout en mode embarqué.
    - Collecte adresse de livraison + téléphone (requis par Printful), taxe automatique.
    - Retour: dict session (ex: {"id": "cs_test_...", "client_secret": "..."}).
    - Lève PaymentProcessorError si l'appel Stripe échoue (rien n'est persisté côté Stripe).
    """
    require_stripe()
    params: Dict[str, Any] = {
        "ui_mode": "embedded",
        "payment_method_types": ["card"],
        "line_items": line_items,
        "mode": "payment",
        "return_url": return_url,
        "shipping_address_collection": {"allowed_countries": allowed_countries},
        "phone_number_collection": {"enabled": True},
        "automatic_tax": {"enabled": True},
        "shipping_options": shipping_options,
        "metadata": metadata,
    }
    if customer_email:
        params["customer_email"] = customer_email
    try:
        session = stripe.checkout.Session.create(**params)
    except stripe.StripeError as e:
        raise PaymentProcessorError(f"Stripe session creation failed: {e}") from e
    return to_dict(session)

def get_session(session_id: str, expand: Optional[List[str]] = None) -> Dict[str, Any]:
    """
    Récupère une session Stripe Checkout par son identifiant.
    - expand: ex SESSION_EXPAND pour obtenir line_items / produits / client.
    """
    require_stripe()
    if expand:
        session = stripe.checkout.Session.retrieve(session_id, expand=expand)
    else:
        session = stripe.checkout.Session.retrieve(session_id)
    return to_dict(session)

def list_line_items(session_id: str) -> List[Dict[str, Any]]:
    """
    Toutes les lignes d'une session Checkout (pagination complète, produit Stripe expandé).
    - L'expansion line_items de retrieve s'arrête à la première page.
    """
    require_stripe()
    page = stripe.checkout.Session.list_line_items(
        session_id, limit=LINE_ITEMS_PAGE_SIZE, expand=["data.price.product"]
    )
    return [to_dict(item) for item in page.auto_paging_iter()]

def construct_event(payload: bytes, sig_header: Optional[str]) -> Dict[str, Any]:
    """
    Valide la signature d'un webhook Stripe et retourne l'événement (dict).
    - Secret absent, en-tête absent, signature invalide ou payload illisible: AuthenticityError.
    """
    require_stripe()
    if not config.STRIPE_WEBHOOK_SECRET:
        raise AuthenticityError("STRIPE_WEBHOOK_SECRET manquant: webhook refusé")
    if not sig_header:
        raise AuthenticityError("En-tête Stripe-Signature manquant")
    try:
        event = stripe.Webhook.construct_event(payload, sig_header, config.STRIPE_WEBHOOK_SECRET)
    except ValueError as e:
        raise AuthenticityError(f"Payload webhook invalide: {e}") from e
    except stripe.SignatureVerificationError as e:
        raise AuthenticityError(f"Signature webhook invalide: {e}") from e
    return to_dict(event)

async def parse_event(request: Request) -> Dict[str, Any]:
    """
    Parse et valide un événement Stripe signé (webhook).
    - Lit le body brut + en-tête Stripe-Signature
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")
    return construct_event(payload, sig_header)
