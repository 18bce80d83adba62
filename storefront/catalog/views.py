# module storefront.catalog.views

"""Endpoints catalogue (lecture seule).
- /products: liste paginée des produits normalisés.
- /products/{id}: détail d'un produit.
Mode dégradé: si Printful est injoignable ou non configuré, on sert le catalogue
statique de repli plutôt que de propager l'erreur au client.
"""
import logging
import math
from typing import Any, Dict

from fastapi import APIRouter, HTTPException, Query

from storefront.errors import ProductNotFound, UpstreamUnavailable
from storefront.catalog import service as catalog_service
from storefront.catalog import fallback

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/products", tags=["Catalog API"])


@router.get("")
def list_products(page: int = Query(1, ge=1), limit: int = Query(12, ge=1, le=100)) -> Dict[str, Any]:
    """Liste paginée.
    - Réponse: {"products": [...], "pagination": {current_page, total, per_page, total_pages}, "source"}
    - source = "printful" ou "fallback" (mode dégradé)
    """
    source = "printful"
    try:
        products = catalog_service.list_products()
    except UpstreamUnavailable as e:
        logger.warning("catalog.views.list_products fallback catalog: %s", e)
        products = fallback.placeholder_products()
        source = "fallback"

    total = len(products)
    start = (page - 1) * limit
    page_items = products[start:start + limit]
    return {
        "products": [p.model_dump(mode="json") for p in page_items],
        "pagination": {
            "current_page": page,
            "total": total,
            "per_page": limit,
            "total_pages": max(1, math.ceil(total / limit)),
        },
        "source": source,
    }


@router.get("/{product_id}")
def get_product(product_id: int) -> Dict[str, Any]:
    """Détail produit; 404 si inconnu (y compris dans le catalogue de repli)."""
    try:
        product = catalog_service.get_product(product_id)
    except ProductNotFound:
        raise HTTPException(status_code=404, detail="Produit introuvable")
    except UpstreamUnavailable as e:
        logger.warning("catalog.views.get_product fallback id=%s: %s", product_id, e)
        product = fallback.placeholder_product(product_id)
        if product is None:
            raise HTTPException(status_code=404, detail="Produit introuvable")
    return {"product": product.model_dump(mode="json")}
