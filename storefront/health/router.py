from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from storefront import config
from storefront.notifications import email as notifications
from storefront.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
def health_root():
    return {
        "ok": True,
        "printful": config.printful_configured(),
        "email": config.email_configured(),
        "webhooks": bool(config.STRIPE_WEBHOOK_SECRET),
    }

@router.get("/rate-limit")
def health_rate_limit(request: Request):
    return JSONResponse(rate_limit_health_info(request))

@router.get("/email")
async def health_email():
    info = await run_in_threadpool(notifications.check_email_connection)
    return JSONResponse(info, status_code=200 if info.get("ok") or not info.get("configured") else 503)
