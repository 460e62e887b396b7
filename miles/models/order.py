"""Order model type definitions for database operations."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TypedDict
from uuid import UUID


class OrderStatus(str, Enum):
    """Order status values matching the order_status database enum."""

    PENDING = "pending"
    PAID = "paid"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    """Payment methods accepted at checkout."""

    STRIPE = "stripe"
    FPX = "fpx"
    COD = "cod"


# Statuses whose total counts towards confirmed revenue
REVENUE_STATUSES = frozenset({OrderStatus.PAID, OrderStatus.SHIPPED, OrderStatus.COMPLETED})


class OrderItem(TypedDict):
    """order_items table row representation.

    product_name and unit_price are snapshots taken at order time and
    survive later product edits or deletion.
    """

    id: int
    order_id: int
    product_id: int | None
    product_name: str
    unit_price: Decimal
    quantity: int
    total_price: Decimal


class Order(TypedDict):
    """orders table row representation, with its embedded order_items."""

    id: int
    store_id: int
    customer_id: UUID | None
    order_number: str
    customer_name: str
    customer_email: str
    customer_phone: str | None
    customer_address: str
    total_amount: Decimal
    status: OrderStatus
    payment_method: PaymentMethod
    payment_reference: str | None
    notes: str | None
    order_items: list[OrderItem]
    created_at: datetime
    updated_at: datetime


class OrderItemCreate(TypedDict):
    """Data required to create an order item."""

    product_id: int
    product_name: str
    unit_price: Decimal
    quantity: int
    total_price: Decimal


class OrderCreate(TypedDict, total=False):
    """Data required to create a new order.

    Used when inserting a new order during checkout.
    """

    store_id: int
    customer_id: UUID | None
    order_number: str
    customer_name: str
    customer_email: str
    customer_phone: str | None
    customer_address: str
    total_amount: Decimal
    status: OrderStatus
    payment_method: PaymentMethod
    notes: str | None
