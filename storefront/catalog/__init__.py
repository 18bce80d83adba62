"""
Module 'catalog' (feature-first): point d'entrée public.
Réunit modèles, normalisation Printful et catalogue de repli.
"""

from .models import CatalogProduct, CatalogVariant
from .service import list_products, get_product, transform_product, parse_price
from .fallback import placeholder_products, placeholder_product

__all__ = [
    "CatalogProduct",
    "CatalogVariant",
    "list_products",
    "get_product",
    "transform_product",
    "parse_price",
    "placeholder_products",
    "placeholder_product",
]
