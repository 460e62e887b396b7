"""Database model type definitions."""

from miles.models.order import (
    REVENUE_STATUSES,
    Order,
    OrderCreate,
    OrderItem,
    OrderItemCreate,
    OrderStatus,
    PaymentMethod,
)
from miles.models.product import Product, Store

__all__ = [
    "Order",
    "OrderCreate",
    "OrderItem",
    "OrderItemCreate",
    "OrderStatus",
    "PaymentMethod",
    "Product",
    "REVENUE_STATUSES",
    "Store",
]
