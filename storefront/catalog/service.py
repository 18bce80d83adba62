"""
Adaptateur catalogue: lit les sync products Printful et les normalise en CatalogProduct.
Règles:
- Produits sans variante exploitable: filtrés (warning), jamais remontés en erreur.
- Variantes exposées: uniquement les variantes synchronisées (les autres servent au prix par défaut).
- Prix de variante: décimal strictement positif, sinon prix par défaut calculé du produit.
- Produit sans aucun prix valide: filtré (jamais d'article à 0 $).
- Printful injoignable / non configuré: UpstreamUnavailable (l'appelant choisit son repli).
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from storefront.errors import ProductNotFound
from storefront.infra import printful_client
from .models import CatalogProduct, CatalogVariant, PrintfulProductDetail, PrintfulSyncVariant

logger = logging.getLogger(__name__)

PLACEHOLDER_IMAGE = "https://via.placeholder.com/400x400/1a1a1a/00ffff?text=Product"

# module storefront.catalog.service
def parse_price(raw: Any) -> Optional[Decimal]:
    """Retourne un Decimal > 0 ou None si la valeur est absente, invalide, nulle ou négative."""
    if raw is None or raw == "":
        return None
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite() or value <= 0:
        return None
    return value

def _pick_image(variant: PrintfulSyncVariant, thumbnail_url: Optional[str]) -> str:
    for file_type in ("preview", "default"):
        for f in variant.files:
            if f.type == file_type and f.preview_url:
                return f.preview_url
    if variant.product and variant.product.image:
        return variant.product.image
    return thumbnail_url or PLACEHOLDER_IMAGE

def transform_product(detail: Dict[str, Any]) -> Optional[CatalogProduct]:
    """
    Convertit un détail Printful ({sync_product, sync_variants}) en CatalogProduct.
    Retourne None (avec warning) si le payload est mal formé ou inexploitable.
    """
    try:
        parsed = PrintfulProductDetail.model_validate(detail)
    except PydanticValidationError as e:
        pid = ((detail or {}).get("sync_product") or {}).get("id") if isinstance(detail, dict) else None
        logger.warning("catalog.transform_product malformed payload id=%s errors=%s", pid, e.error_count())
        return None

    product = parsed.sync_product
    variants = [v for v in parsed.sync_variants if not v.is_ignored]
    if not variants:
        logger.warning("catalog.transform_product product %s has no variants, skipping", product.id)
        return None

    default_variant = next((v for v in variants if v.synced), variants[0])

    # Prix par défaut: variante par défaut, sinon premier prix valide parmi les variantes
    price = parse_price(default_variant.retail_price)
    if price is None:
        price = next((p for p in (parse_price(v.retail_price) for v in variants) if p is not None), None)
    if price is None:
        logger.warning("catalog.transform_product product %s has no valid retail price, skipping", product.id)
        return None

    image = _pick_image(default_variant, product.thumbnail_url)
    category = (default_variant.product.type_name if default_variant.product else None) or "General"

    return CatalogProduct(
        id=product.id,
        name=product.name,
        description=f"High-quality {product.name}",
        price=price,
        image=image,
        images=[image],
        category=category,
        tags=[category.lower()],
        external_id=product.external_id,
        variants=[
            CatalogVariant(
                id=v.id,
                sync_variant_id=v.id,
                title=v.name or "Default",
                price=parse_price(v.retail_price) or price,
                available=True,
                sku=v.sku or "",
            )
            # Seules les variantes synchronisées sont commandables chez Printful
            for v in variants if v.synced
        ],
    )

def list_products() -> List[CatalogProduct]:
    """
    Récupère le catalogue complet (un fetch complet par appel, pas de cache).
    - Lève UpstreamUnavailable si Printful est injoignable ou non configuré.
    """
    client = printful_client.get_printful_client()
    products: List[CatalogProduct] = []
    for summary in client.list_sync_products():
        pid = (summary or {}).get("id") if isinstance(summary, dict) else None
        if pid is None:
            logger.warning("catalog.list_products summary without id skipped")
            continue
        if summary.get("is_ignored"):
            continue
        try:
            detail = client.get_sync_product(pid)
        except printful_client.PrintfulPayloadError as e:
            logger.warning("catalog.list_products product %s malformed detail, skipping: %s", pid, e)
            continue
        except printful_client.PrintfulAPIError as e:
            if e.upstream_status == 404:
                logger.warning("catalog.list_products product %s disappeared, skipping", pid)
                continue
            raise
        product = transform_product(detail)
        if product is not None:
            products.append(product)
    logger.info("catalog.list_products normalized=%s", len(products))
    return products

def get_product(product_id: Any) -> CatalogProduct:
    """
    Récupère un produit par identifiant Printful.
    - ProductNotFound si Printful répond 404 ou si le produit est filtré.
    - UpstreamUnavailable pour toute autre indisponibilité.
    """
    client = printful_client.get_printful_client()
    try:
        detail = client.get_sync_product(product_id)
    except printful_client.PrintfulAPIError as e:
        if e.upstream_status == 404:
            raise ProductNotFound(f"Produit {product_id} introuvable") from e
        raise
    product = transform_product(detail)
    if product is None:
        raise ProductNotFound(f"Produit {product_id} sans variante exploitable")
    return product
