"""
Registre central des routers (catalogue, paiement, health).
- Catalogue: /products
- Paiement: /checkout, /checkout/session/{id}, /webhooks/payment
- Health: /health, /health/rate-limit, /health/email
"""
from fastapi import FastAPI
from storefront.catalog.views import router as catalog_router
from storefront.payments import views as payments_views
from storefront.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    """
    Agrège tous les routers de l'application.
    - L'ordre n'a pas d'impact sauf conflits de chemins (évités par préfixes).
    """
    app.include_router(catalog_router)
    app.include_router(payments_views.router)
    # Health & monitoring
    app.include_router(health_router)
