# module storefront.catalog.models
"""
Modèles du catalogue.
- Printful*: forme des payloads distants, validés à la frontière (pydantic).
- CatalogProduct / CatalogVariant: forme interne normalisée exposée au reste de l'app.
"""
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class PrintfulFile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Optional[str] = None
    preview_url: Optional[str] = None


class PrintfulVariantProduct(BaseModel):
    model_config = ConfigDict(extra="ignore")

    variant_id: Optional[int] = None
    product_id: Optional[int] = None
    image: Optional[str] = None
    name: Optional[str] = None
    type_name: Optional[str] = None


class PrintfulSyncVariant(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: int
    name: Optional[str] = None
    synced: bool = False
    retail_price: Optional[str] = None
    sku: Optional[str] = None
    is_ignored: bool = False
    product: Optional[PrintfulVariantProduct] = None
    files: List[PrintfulFile] = Field(default_factory=list)


class PrintfulSyncProduct(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    external_id: Optional[str] = None
    name: str
    thumbnail_url: Optional[str] = None
    is_ignored: bool = False


class PrintfulProductDetail(BaseModel):
    model_config = ConfigDict(extra="ignore")

    sync_product: PrintfulSyncProduct
    sync_variants: List[PrintfulSyncVariant] = Field(default_factory=list)


class CatalogVariant(BaseModel):
    id: int
    sync_variant_id: int
    title: str
    price: Decimal
    available: bool
    sku: str = ""

    @field_serializer("price")
    def _price_as_number(self, value: Decimal) -> float:
        return float(value)


class CatalogProduct(BaseModel):
    id: int
    name: str
    description: str = ""
    price: Decimal
    image: str
    images: List[str] = Field(default_factory=list)
    category: str = "General"
    tags: List[str] = Field(default_factory=list)
    external_id: Optional[str] = None
    variants: List[CatalogVariant] = Field(default_factory=list)

    @field_serializer("price")
    def _price_as_number(self, value: Decimal) -> float:
        return float(value)
