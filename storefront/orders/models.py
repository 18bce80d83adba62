# module storefront.orders.models
"""Modèles des commandes persistées (tables orders / order_items / shipping_addresses).
- stripe_session_id est la clé d'idempotence (index unique côté base).
- printful_order_id reste vide tant que la soumission au fulfillment n'a pas réussi.
"""
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class OrderItem(BaseModel):
    product_id: str = ""
    product_name: str
    sync_variant_id: Optional[int] = None
    quantity: int = 1
    price: Decimal


class ShippingAddress(BaseModel):
    name: str
    address1: str = ""
    address2: str = ""
    city: str = ""
    state_code: str = ""
    country_code: str = ""
    zip: str = ""
    phone: str = ""
    email: str = ""


class Order(BaseModel):
    stripe_session_id: str
    printful_order_id: Optional[str] = None
    customer_email: str
    customer_name: str
    customer_phone: Optional[str] = None
    total_amount: Decimal
    currency: str = "usd"
    payment_status: str = ""
    status: OrderStatus = OrderStatus.PENDING
    needs_review: bool = False
    items: List[OrderItem] = Field(default_factory=list)
    shipping_address: ShippingAddress

    def to_record(self) -> Dict[str, Any]:
        """Forme JSON attendue par la fonction SQL create_order_once (montants en chaînes décimales)."""
        return self.model_dump(mode="json")
