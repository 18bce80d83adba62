"""
Module 'payments' (feature-first): point d'entrée public.
Réunit validation du panier, autorité de prix, client Stripe et cas d'usage checkout.
"""

from .cart import CartLineItem, CustomerInfo, parse_cart, to_line_items, make_metadata, shipping_options
from .pricing import ReconcileResult, reconcile
from .stripe_client import require_stripe, create_session, get_session, construct_event, parse_event
from .service import create_checkout_session, process_checkout, get_session_status

__all__ = [
    # cart
    "CartLineItem",
    "CustomerInfo",
    "parse_cart",
    "to_line_items",
    "make_metadata",
    "shipping_options",
    # pricing
    "ReconcileResult",
    "reconcile",
    # stripe
    "require_stripe",
    "create_session",
    "get_session",
    "construct_event",
    "parse_event",
    # services
    "create_checkout_session",
    "process_checkout",
    "get_session_status",
]
