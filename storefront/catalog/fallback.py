"""
Catalogue statique de repli (mode dégradé).
Servi par les vues quand Printful est injoignable ou non configuré, pour ne jamais
afficher d'erreur au client sur la page boutique.
"""
from decimal import Decimal
from typing import List, Optional

from .models import CatalogProduct, CatalogVariant

_PLACEHOLDER = "https://via.placeholder.com/400x400/1a1a1a/{color}?text={text}"


def _product(pid: int, name: str, price: str, color: str, text: str, description: str,
             category: str, tags: List[str], variants: List[tuple]) -> CatalogProduct:
    image = _PLACEHOLDER.format(color=color, text=text)
    return CatalogProduct(
        id=pid,
        name=name,
        description=description,
        price=Decimal(price),
        image=image,
        images=[image],
        category=category,
        tags=tags,
        variants=[
            CatalogVariant(id=vid, sync_variant_id=vid, title=title, price=Decimal(price), available=True, sku=sku)
            for vid, title, sku in variants
        ],
    )


PLACEHOLDER_PRODUCTS: List[CatalogProduct] = [
    _product(1, "Cozy Gamer Vibes Kids Tee", "17.00", "00ffff", "Gamer+Tee",
             "Perfect for young gamers who love retro vibes", "Kids", ["gaming", "kids", "retro"],
             [(1, "Default", "GT-001")]),
    _product(2, "Bubble-free Stickers", "2.50", "ff00ff", "Stickers",
             "High-quality gaming stickers for your setup", "Accessories", ["gaming", "stickers", "accessories"],
             [(2, "Default", "ST-001")]),
    _product(3, "Retro Gaming Hoodie", "45.00", "00ff00", "Hoodie",
             "Stay cozy while gaming with this retro hoodie", "Hoodies", ["gaming", "hoodie", "apparel"],
             [(3, "Small", "HD-001-S"), (4, "Medium", "HD-001-M"), (5, "Large", "HD-001-L")]),
    _product(4, "Pixel Art Fanny Pack", "25.00", "ffff00", "Fanny+Pack",
             "Carry your essentials in retro style", "Accessories", ["gaming", "accessories", "bag"],
             [(6, "Default", "FP-001")]),
]


def placeholder_products() -> List[CatalogProduct]:
    return [p.model_copy(deep=True) for p in PLACEHOLDER_PRODUCTS]


def placeholder_product(product_id: int) -> Optional[CatalogProduct]:
    for p in PLACEHOLDER_PRODUCTS:
        if p.id == product_id:
            return p.model_copy(deep=True)
    return None
