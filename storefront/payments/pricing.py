"""
Autorité de prix: re-dérive les prix unitaires depuis le catalogue Printful.
Règles:
- Quantités hors [1, 99] ou non entières: erreur (toujours contrôlé, y compris en mode dev).
- Sans identifiants Printful: pas de réconciliation des prix (bypass développement), lignes marquées « non vérifiées ».
- Correspondance trouvée: le prix serveur remplace le prix client si l'écart dépasse 0.01.
- Aucune correspondance: ligne acceptée telle quelle, marquée « non vérifiée » (revue manuelle).
- Catalogue indisponible: lignes d'origine renvoyées sans erreur de prix et marquées « non vérifiées », le checkout n'est pas bloqué.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from storefront import config
from storefront.catalog import service as catalog_service
from storefront.catalog.models import CatalogProduct
from .cart import CartLineItem, MIN_QUANTITY, MAX_QUANTITY

logger = logging.getLogger(__name__)

PRICE_TOLERANCE = Decimal("0.01")


@dataclass
class ReconcileResult:
    validated: List[CartLineItem]
    errors: List[str] = field(default_factory=list)
    unverified: List[str] = field(default_factory=list)


def _quantity_errors(items: List[CartLineItem]) -> List[str]:
    errors: List[str] = []
    for item in items:
        qty = item.quantity
        if isinstance(qty, bool) or not isinstance(qty, int) or not (MIN_QUANTITY <= qty <= MAX_QUANTITY):
            errors.append(f"Invalid quantity for {item.name}")
    return errors

def build_price_lookups(
    products: List[CatalogProduct],
) -> Tuple[Dict[int, Tuple[Decimal, str]], Dict[int, Tuple[Decimal, str]]]:
    """
    Index de prix serveur:
    - variant_id -> (prix, "<produit> - <variante>")
    - product_id -> (prix, nom du produit)
    """
    by_variant: Dict[int, Tuple[Decimal, str]] = {}
    by_product: Dict[int, Tuple[Decimal, str]] = {}
    for product in products:
        by_product[product.id] = (product.price, product.name)
        for variant in product.variants:
            by_variant[variant.sync_variant_id] = (variant.price, f"{product.name} - {variant.title}")
    return by_variant, by_product

def _as_int(value: object) -> Optional[int]:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None

def reconcile(items: List[CartLineItem]) -> ReconcileResult:
    """
    Réconcilie les lignes du panier avec les prix du catalogue.
    Retour: ReconcileResult(validated, errors, unverified). errors non vide => pas de checkout.
    """
    errors = _quantity_errors(items)

    if not config.printful_configured():
        logger.info("pricing.reconcile skipped: Printful not configured (development bypass)")
        return ReconcileResult(validated=list(items), errors=errors, unverified=[i.id for i in items])

    try:
        by_variant, by_product = build_price_lookups(catalog_service.list_products())

        validated: List[CartLineItem] = []
        unverified: List[str] = []
        for item in items:
            # Variante d'abord (sync_variant_id, sinon l'id de la ligne), puis produit
            product_id = _as_int(item.id)
            variant_id = item.sync_variant_id if item.sync_variant_id is not None else product_id
            match = by_variant.get(variant_id) if variant_id is not None else None
            if match is None and product_id is not None:
                match = by_product.get(product_id)

            if match is None:
                logger.warning(
                    "pricing.reconcile no server price for item id=%s variant=%s, client price %s accepted (flagged)",
                    item.id, item.sync_variant_id, item.price,
                )
                unverified.append(item.id)
                validated.append(item)
                continue

            server_price, server_name = match
            if abs(server_price - item.price) > PRICE_TOLERANCE:
                logger.warning(
                    "pricing.reconcile price mismatch id=%s client=%s server=%s, using server price",
                    item.id, item.price, server_price,
                )
                item = item.model_copy(update={"price": server_price, "name": server_name})
            validated.append(item)

        return ReconcileResult(validated=validated, errors=errors, unverified=unverified)
    except Exception:
        logger.exception("pricing.reconcile failed, continuing with unvalidated items")
        return ReconcileResult(validated=list(items), errors=errors, unverified=[i.id for i in items])
