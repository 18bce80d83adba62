from fastapi import FastAPI
from storefront.config import COOKIE_SECURE

# Le checkout embarqué charge Stripe.js et ses iframes
STRIPE_SOURCES = ["https://js.stripe.com", "https://checkout.stripe.com"]
SWAGGER_CDNS = ["https://cdn.jsdelivr.net", "https://unpkg.com"]

def register_security_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def security_headers(request, call_next):
        response = await call_next(request)

        # En-têtes de sécurité
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
        if COOKIE_SECURE:
            response.headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains; preload")

        # CSP (API JSON + doc Swagger)
        csp = (
            "default-src 'self'; "
            "base-uri 'self'; object-src 'none'; frame-ancestors 'none'; "
            "img-src 'self' data: https://fastapi.tiangolo.com https://files.cdn.printful.com; "
            f"style-src 'self' 'unsafe-inline' {' '.join(SWAGGER_CDNS)}; "
            f"script-src 'self' 'unsafe-inline' {' '.join(SWAGGER_CDNS + STRIPE_SOURCES)}; "
            f"frame-src {' '.join(STRIPE_SOURCES)}; "
            "connect-src 'self' https://api.stripe.com"
        )
        response.headers["Content-Security-Policy"] = csp

        return response
