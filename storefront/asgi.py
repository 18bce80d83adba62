"""
ASGI entrypoint: expose `app` pour les process managers / déploiements.

- En production, un process manager (ex: gunicorn + uvicorn workers) importe `storefront.asgi:app`.
- Toute la configuration (routes, middlewares, lifespan) est centralisée dans storefront.app_setup.
"""

from storefront.app import app

if __name__ == "__main__":
    # Exécution directe utile en développement local
    import os
    import uvicorn
    uvicorn.run(
        "storefront.asgi:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
