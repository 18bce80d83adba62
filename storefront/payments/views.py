import logging
from typing import Any, Dict

from fastapi import APIRouter, Request, Depends, HTTPException
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from storefront import config
from storefront.errors import AuthenticityError, PaymentProcessorError, ValidationError
from storefront.utils.rate_limit import optional_rate_limit
from storefront.payments import stripe_client
from storefront.payments import service as payments_service
from storefront.orders import service as orders_service

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Payments API"])


def _return_origin(request: Request) -> str:
    """Origine des URLs de retour: l'en-tête Origin seulement s'il est explicitement autorisé."""
    origin = (request.headers.get("origin") or "").rstrip("/")
    if origin and origin in config.CORS_ORIGINS:
        return origin
    return config.SITE_URL

# module storefront.payments.views
@router.post("/checkout", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def create_checkout_session(request: Request):
    """
    Crée une session Checkout Stripe embarquée pour le panier soumis.
    - Entrée JSON: { "items": [ {id, name, price, quantity, image?, sync_variant_id?}, ... ],
                     "customerInfo": {email?, name?} }
    - Étapes: validation du panier, réconciliation des prix, création de la session Stripe
    - Réponse: {"clientSecret": "..."} pour le composant de paiement embarqué
    - Erreurs: 400 si panier invalide, 500 (message générique) si Stripe échoue
    """
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON body")

    origin = _return_origin(request)
    success_url = f"{origin}{config.CHECKOUT_SUCCESS_PATH}"
    cancel_url = f"{origin}{config.CHECKOUT_CANCEL_PATH}"
    try:
        session = await run_in_threadpool(
            payments_service.process_checkout,
            body.get("items"),
            body.get("customerInfo"),
            success_url,
            cancel_url,
        )
    except ValidationError as e:
        logger.info("payments.checkout rejected: %s errors=%s", e, e.errors)
        detail: Dict[str, Any] = {"error": str(e)}
        if e.errors:
            detail["errors"] = e.errors
        raise HTTPException(status_code=400, detail=detail)
    except PaymentProcessorError:
        logger.exception("Erreur create_checkout_session")
        raise HTTPException(status_code=500, detail=PaymentProcessorError.public_message)
    return JSONResponse({"clientSecret": session.get("client_secret")})


@router.get("/checkout/session/{session_id}")
def checkout_session_status(session_id: str) -> Dict[str, Any]:
    """
    Statut d'une session pour la page de succès (lecture directe Stripe).
    - Erreurs: 404 si la session est introuvable ou Stripe indisponible
    """
    try:
        return payments_service.get_session_status(session_id)
    except Exception:
        logger.exception("Erreur checkout_session_status session_id=%s", session_id)
        raise HTTPException(status_code=404, detail="Session introuvable")


@router.post("/webhooks/payment", include_in_schema=False)
async def payment_webhook(request: Request):
    """
    Webhook Stripe: signature vérifiée puis traitement de l'événement.
    - 400 si la signature est invalide (aucune action)
    - 500 si la commande n'a pas pu être rendue durable (Stripe relivrera)
    - {"received": true} sinon, y compris si l'événement est différé ou en doublon
    """
    try:
        event = await stripe_client.parse_event(request)
    except AuthenticityError as e:
        logger.warning("payments.webhook rejected: %s", e)
        raise HTTPException(status_code=400, detail=AuthenticityError.public_message)

    try:
        result = await run_in_threadpool(orders_service.handle_event, event)
    except Exception:
        logger.exception("Erreur payment_webhook event_id=%s", event.get("id"))
        raise HTTPException(status_code=500, detail="Webhook processing failed")

    logger.info("payments.webhook event=%s type=%s status=%s", event.get("id"), event.get("type"), result.get("status"))
    return JSONResponse({"received": True})
