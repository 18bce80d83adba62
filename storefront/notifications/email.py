"""
Emails transactionnels de la boutique (confirmation de commande).
- Rendu HTML + texte via les templates Jinja2 de storefront/templates/emails.
- Envoi SMTP (STARTTLS, ou SSL sur le port 465).
- Un email manquant ne doit jamais faire échouer le webhook: les erreurs sont journalisées
  et renvoyées dans un NotificationResult, jamais levées.
"""
from dataclasses import dataclass
from decimal import Decimal
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from typing import Any, Dict, Optional
import logging
import smtplib

from jinja2 import Environment, FileSystemLoader, select_autoescape

from storefront import config
from storefront.errors import NotificationError
from storefront.orders.models import Order

logger = logging.getLogger(__name__)

_env = Environment(
    loader=FileSystemLoader(str(config.TEMPLATES_DIR / "emails")),
    autoescape=select_autoescape(["html"]),
)

NOT_CONFIGURED = "Email not configured"


@dataclass
class NotificationResult:
    success: bool
    error: Optional[str] = None
    message_id: Optional[str] = None


def _money(value: Decimal) -> str:
    return f"{value:.2f}"

def order_number(order: Order) -> str:
    """Numéro de commande affiché au client (fin de l'identifiant de session Stripe)."""
    return order.stripe_session_id[-8:].upper()

def _context(order: Order) -> Dict[str, Any]:
    return {
        "store_name": config.EMAIL_FROM_NAME,
        "customer_name": order.customer_name or "there",
        "order_number": order_number(order),
        "items": [
            {"name": i.product_name, "quantity": i.quantity, "price": _money(i.price)}
            for i in order.items
        ],
        "total_amount": _money(order.total_amount),
        "address": order.shipping_address,
        "site_url": config.SITE_URL,
        "support_email": config.SUPPORT_EMAIL,
    }

def render_order_confirmation(order: Order) -> Dict[str, str]:
    """Retourne {"subject", "html", "text"} pour la confirmation de commande."""
    ctx = _context(order)
    return {
        "subject": f"Order Confirmation #{ctx['order_number']} - {config.EMAIL_FROM_NAME}",
        "html": _env.get_template("order_confirmation.html").render(**ctx),
        "text": _env.get_template("order_confirmation.txt").render(**ctx),
    }

def _connect() -> smtplib.SMTP:
    timeout = config.HTTP_TIMEOUT_SECONDS
    if config.EMAIL_SERVER_PORT == 465:
        server: smtplib.SMTP = smtplib.SMTP_SSL(config.EMAIL_SERVER_HOST, config.EMAIL_SERVER_PORT, timeout=timeout)
    else:
        server = smtplib.SMTP(config.EMAIL_SERVER_HOST, config.EMAIL_SERVER_PORT, timeout=timeout)
        server.ehlo()
        if server.has_extn("starttls"):
            server.starttls()
            server.ehlo()
    server.login(config.EMAIL_SERVER_USER, config.EMAIL_SERVER_PASSWORD)
    return server

def _send(to: str, subject: str, html: str, text: str) -> str:
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = formataddr((config.EMAIL_FROM_NAME, config.EMAIL_FROM))
    msg["To"] = to
    message_id = make_msgid(domain=(config.EMAIL_FROM.split("@")[-1] or None))
    msg["Message-ID"] = message_id
    msg.set_content(text)
    msg.add_alternative(html, subtype="html")

    try:
        with _connect() as server:
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        raise NotificationError(f"SMTP send failed: {e}") from e
    return message_id

def send_order_confirmation(order: Order) -> NotificationResult:
    """
    Envoie la confirmation de commande au client.
    - SMTP non configuré: NotificationResult(success=False, error="Email not configured").
    - Échec d'envoi: journalisé, success=False; aucune exception ne remonte.
    """
    if not config.email_configured():
        logger.warning("notifications email not configured, skipping confirmation for session %s", order.stripe_session_id)
        return NotificationResult(success=False, error=NOT_CONFIGURED)
    if not order.customer_email:
        return NotificationResult(success=False, error="No recipient")

    try:
        content = render_order_confirmation(order)
        message_id = _send(order.customer_email, content["subject"], content["html"], content["text"])
    except NotificationError as e:
        logger.error("notifications confirmation failed for session %s: %s", order.stripe_session_id, e)
        return NotificationResult(success=False, error=str(e))
    except Exception as e:
        logger.exception("notifications unexpected error for session %s", order.stripe_session_id)
        return NotificationResult(success=False, error=str(e))

    logger.info("notifications confirmation sent to %s (session %s)", order.customer_email, order.stripe_session_id)
    return NotificationResult(success=True, message_id=message_id)

def check_email_connection() -> Dict[str, Any]:
    """Vérifie la connexion et l'authentification SMTP (utilisé par /health/email)."""
    if not config.email_configured():
        return {"ok": False, "configured": False, "error": NOT_CONFIGURED}
    try:
        with _connect():
            pass
    except (smtplib.SMTPException, OSError) as e:
        logger.warning("notifications SMTP connection check failed: %s", e)
        return {"ok": False, "configured": True, "error": str(e)}
    return {"ok": True, "configured": True, "host": config.EMAIL_SERVER_HOST}
