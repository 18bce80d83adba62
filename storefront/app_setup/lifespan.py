"""
Lifespan FastAPI: vérifications de démarrage et ressources partagées.
- STRIPE_SECRET_KEY absente: démarrage refusé (RuntimeError).
- STRIPE_WEBHOOK_SECRET absente: avertissement, les webhooks seront rejetés (400).
- Initialise FastAPILimiter (Redis) avec options de test (fakeredis).
- Variables d'environnement supportées:
  - DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS=1: désactive complètement (tests)
  - USE_FAKE_REDIS_FOR_TESTS=1: utilise fakeredis (tests)
  - LOCAL_RATE_LIMIT_FALLBACK=1: store mémoire sur app.state si l'init échoue
- À l'arrêt: fermeture du limiter, du store mémoire et du client Printful.
"""
import os
import logging
import redis.asyncio as redis
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi_limiter import FastAPILimiter

from storefront import config
from storefront.infra import printful_client


def _check_required_settings(logger: logging.Logger) -> None:
    if not config.STRIPE_SECRET_KEY:
        raise RuntimeError("STRIPE_SECRET_KEY manquant: impossible de créer des sessions de paiement")
    if not config.STRIPE_WEBHOOK_SECRET:
        logger.warning("STRIPE_WEBHOOK_SECRET manquant: les webhooks de paiement seront rejetés")
    if not config.printful_configured():
        logger.warning("PRINTFUL_API_TOKEN manquant: catalogue de secours, prix non vérifiés, fulfillment désactivé")
    if not config.email_configured():
        logger.warning("SMTP incomplet: les emails de confirmation ne seront pas envoyés")


async def _init_rate_limiter(app: FastAPI, logger: logging.Logger) -> None:
    app.state.rate_limit_store = {}
    try:
        if os.getenv("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS") == "1":
            app.state.rate_limit_enabled = os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1"
            logger.info("Rate limiting (Redis) disabled by DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS")
            return

        if os.getenv("USE_FAKE_REDIS_FOR_TESTS") == "1":
            from fakeredis.aioredis import FakeRedis  # tests only
            r = FakeRedis(decode_responses=True)
        else:
            redis_url = os.getenv("RATE_LIMIT_REDIS_URL", "redis://127.0.0.1:6379/0")
            r = redis.from_url(redis_url, encoding="utf-8", decode_responses=True)

        await FastAPILimiter.init(r)
        app.state.rate_limit_enabled = True
        logger.info("Rate limiting enabled")
    except Exception as e:
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            app.state.rate_limit_enabled = True
            logger.warning("Rate limiting falling back to local in-memory due to init error: %s", e)
        else:
            app.state.rate_limit_enabled = False
            logger.warning("Rate limiting disabled due to init error: %s", e)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Vérifie la configuration puis configure le rate limiting.
    - En cas d'échec de Redis et sans fallback, le rate limiting est désactivé proprement.
    - Les logs indiquent l'état effectif (enabled/disabled) pour observabilité.
    """
    logger = logging.getLogger("uvicorn.error")
    _check_required_settings(logger)
    await _init_rate_limiter(app, logger)
    try:
        yield
    finally:
        if getattr(FastAPILimiter, "redis", None) is not None:
            try:
                await FastAPILimiter.close()
            except Exception as e:
                logger.warning("Rate limiter close failed: %s", e)
        app.state.rate_limit_store = {}
        printful_client.close_printful_client()
