"""
Accès aux données pour la feature 'orders' (Supabase, client service-role).
- La création passe par la fonction SQL create_order_once: insertion de la commande,
  des lignes et de l'adresse dans une même transaction, ON CONFLICT (stripe_session_id) DO NOTHING.
- Deux livraisons concurrentes du même webhook ne peuvent donc produire qu'une seule commande.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union
import logging
import storefront.infra.supabase_client as supabase_client
from storefront.errors import OrderPersistenceError, ValidationError
from .models import Order, OrderStatus

logger = logging.getLogger(__name__)

# module storefront.orders.repository
def create_order(order: Order) -> Dict[str, Any]:
    """
    Crée la commande si aucune n'existe pour ce stripe_session_id.
    Retour: {"id": <order_id>, "created": bool}. created=False => doublon (no-op).
    Lève OrderPersistenceError si la base est injoignable: le webhook doit être relivré.
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .rpc("create_order_once", {"p_order": order.to_record()})
            .execute()
        )
    except Exception as e:
        logger.exception("orders.repository.create_order failed session_id=%s", order.stripe_session_id)
        raise OrderPersistenceError(f"create_order_once failed: {e}") from e

    data = res.data
    row = data[0] if isinstance(data, list) and data else data
    if not isinstance(row, dict) or not row.get("id"):
        raise OrderPersistenceError(f"create_order_once returned no order for session_id={order.stripe_session_id}")
    return {"id": str(row["id"]), "created": bool(row.get("created"))}

def get_order_by_session_id(stripe_session_id: str) -> Optional[dict]:
    """
    Commande associée à une session Stripe, ou None.
    - En cas d'erreur de lecture, retourne None: create_order reste protégé par l'index unique.
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .select("*")
            .eq("stripe_session_id", stripe_session_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("orders.repository.get_order_by_session_id failed session_id=%s", stripe_session_id)
        return None

def mark_fulfillment_submitted(stripe_session_id: str, printful_order_id: str) -> bool:
    """Enregistre l'identifiant Printful et passe la commande en PROCESSING (True si une ligne mise à jour)."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .update({
                "printful_order_id": printful_order_id,
                "status": OrderStatus.PROCESSING.value,
            })
            .eq("stripe_session_id", stripe_session_id)
            .execute()
        )
        return len(res.data or []) > 0
    except Exception:
        logger.exception("orders.repository.mark_fulfillment_submitted failed session_id=%s", stripe_session_id)
        return False

def get_orders_by_customer_email(email: str) -> List[dict]:
    """Commandes d'un client (lignes et adresse incluses), plus récentes d'abord. [] en cas d'erreur de lecture."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .select("*, order_items(*), shipping_addresses(*)")
            .eq("customer_email", email)
            .order("created_at", desc=True)
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("orders.repository.get_orders_by_customer_email failed")
        return []

def update_order_status(order_id: str, status: Union[OrderStatus, str]) -> Optional[dict]:
    """
    Fait avancer une commande (SHIPPED, DELIVERED, CANCELLED, REFUNDED...).
    - Statut inconnu: ValidationError, aucune écriture.
    - Retour: la ligne mise à jour, ou None si aucune commande ne porte cet id.
    - Lève OrderPersistenceError si l'écriture échoue.
    """
    try:
        new_status = OrderStatus(status)
    except ValueError as e:
        raise ValidationError(f"Statut de commande inconnu: {status}") from e
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .update({
                "status": new_status.value,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            })
            .eq("id", order_id)
            .execute()
        )
    except Exception as e:
        logger.exception("orders.repository.update_order_status failed order_id=%s", order_id)
        raise OrderPersistenceError(f"update_order_status failed: {e}") from e
    rows = res.data or []
    if not rows:
        logger.warning("orders.repository.update_order_status no order with id=%s", order_id)
        return None
    logger.info("orders.repository.update_order_status order %s -> %s", order_id, new_status.value)
    return rows[0]
