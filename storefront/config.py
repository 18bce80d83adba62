# storefront.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env (les variables d'environnement restent prioritaires)
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

"""
Configuration centrale de la boutique.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Printful, Stripe, Supabase, SMTP)
- Paramètres du checkout: devise, pays de livraison, tarif express
- Timeouts et retries des appels sortants
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _int_env(name: str, default: int) -> int:
    try:
        return int(_clean_env(os.getenv(name) or "") or default)
    except ValueError:
        return default

def _float_env(name: str, default: float) -> float:
    try:
        return float(_clean_env(os.getenv(name) or "") or default)
    except ValueError:
        return default

# Printful: catalogue (sync products) et création des commandes de fulfillment
PRINTFUL_API_URL = _clean_env(os.getenv("PRINTFUL_API_URL") or "https://api.printful.com").rstrip("/")
PRINTFUL_API_TOKEN = _clean_env(os.getenv("PRINTFUL_API_TOKEN") or "")
PRINTFUL_STORE_ID = _clean_env(os.getenv("PRINTFUL_STORE_ID") or "")
PRINTFUL_MAX_RETRIES = _int_env("PRINTFUL_MAX_RETRIES", 2)
PRINTFUL_RETRY_BACKOFF = _float_env("PRINTFUL_RETRY_BACKOFF", 0.5)

# Timeout (secondes) appliqué à tous les appels HTTP sortants
HTTP_TIMEOUT_SECONDS = _float_env("HTTP_TIMEOUT_SECONDS", 10.0)

# Stripe: clés privée/publique et secret de signature des webhooks
STRIPE_PUBLIC_KEY = _clean_env(os.getenv("STRIPE_PUBLIC_KEY") or "")
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")
STRIPE_MAX_NETWORK_RETRIES = _int_env("STRIPE_MAX_NETWORK_RETRIES", 2)

# Checkout: devise, pays autorisés pour la livraison, tarif express (centimes)
STORE_CURRENCY = _clean_env(os.getenv("STORE_CURRENCY") or "usd").lower()
SHIPPING_ALLOWED_COUNTRIES = [
    c.strip().upper() for c in os.getenv("SHIPPING_ALLOWED_COUNTRIES", "US,CA,GB,AU").split(",") if c.strip()
]
EXPRESS_SHIPPING_AMOUNT = _int_env("EXPRESS_SHIPPING_AMOUNT", 999)

# Supabase: persistance des commandes (clé service-role côté serveur)
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# SMTP: confirmation de commande (optionnel, l'envoi est ignoré si incomplet)
EMAIL_SERVER_HOST = _clean_env(os.getenv("EMAIL_SERVER_HOST") or "")
EMAIL_SERVER_PORT = _int_env("EMAIL_SERVER_PORT", 587)
EMAIL_SERVER_USER = _clean_env(os.getenv("EMAIL_SERVER_USER") or "")
EMAIL_SERVER_PASSWORD = _clean_env(os.getenv("EMAIL_SERVER_PASSWORD") or "")
EMAIL_FROM = _clean_env(os.getenv("EMAIL_FROM") or EMAIL_SERVER_USER)
EMAIL_FROM_NAME = os.getenv("EMAIL_FROM_NAME", "Save Point Apparel")
SUPPORT_EMAIL = _clean_env(os.getenv("SUPPORT_EMAIL") or "support@savepointapparel.com")

# URL publique du site (liens des emails, fallback d'origine pour les redirections)
SITE_URL = _clean_env(os.getenv("SITE_URL") or "http://localhost:3000").rstrip("/")

# Pages de retour du checkout embarqué
CHECKOUT_SUCCESS_PATH = os.getenv("CHECKOUT_SUCCESS_PATH", "/checkout/success?session_id={CHECKOUT_SESSION_ID}")
CHECKOUT_CANCEL_PATH = os.getenv("CHECKOUT_CANCEL_PATH", "/checkout/cancel")

# CORS / hôtes autorisés
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")


def printful_configured() -> bool:
    return bool(PRINTFUL_API_TOKEN)


def email_configured() -> bool:
    return bool(EMAIL_SERVER_HOST and EMAIL_SERVER_USER and EMAIL_SERVER_PASSWORD)
