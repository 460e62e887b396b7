"""Order Pydantic schemas for API request/response models."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from miles.models.order import OrderStatus, PaymentMethod


class CheckoutItem(BaseModel):
    """A single requested line at checkout."""

    product_id: int = Field(gt=0, description="Product ID")
    quantity: int = Field(ge=1, description="Quantity ordered")


class CheckoutRequest(BaseModel):
    """Schema for creating an order via POST /checkout/orders."""

    store_id: int = Field(gt=0, description="Store the order is placed with")
    customer_name: str = Field(min_length=1, max_length=255, description="Customer name")
    customer_email: str = Field(
        min_length=3,
        max_length=255,
        pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$",
        description="Customer email address",
    )
    customer_phone: str | None = Field(default=None, max_length=20, description="Customer phone")
    customer_address: str = Field(min_length=1, description="Shipping address")
    items: list[CheckoutItem] = Field(min_length=1, description="Ordered products")
    payment_method: PaymentMethod = Field(description="stripe, fpx or cod")
    notes: str | None = Field(default=None, description="Free-text notes for the store")


class OrderItemResponse(BaseModel):
    """Schema for an order line in responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(description="Order item ID")
    product_id: int | None = Field(default=None, description="Product ID (null if the product was deleted)")
    product_name: str = Field(description="Product name at order time")
    unit_price: Decimal = Field(description="Unit price at order time")
    quantity: int = Field(description="Quantity ordered")
    total_price: Decimal = Field(description="quantity x unit_price")


class OrderResponse(BaseModel):
    """Schema for order API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(description="Order ID")
    store_id: int = Field(description="Store ID")
    customer_id: UUID | None = Field(default=None, description="Customer ID, null for guest checkout")
    order_number: str = Field(description="Human-readable order number")
    customer_name: str = Field(description="Customer name at order time")
    customer_email: str = Field(description="Customer email at order time")
    customer_phone: str | None = Field(default=None, description="Customer phone at order time")
    customer_address: str = Field(description="Shipping address at order time")
    total_amount: Decimal = Field(description="Order total")
    status: OrderStatus = Field(description="Order status")
    payment_method: PaymentMethod = Field(description="Payment method")
    payment_reference: str | None = Field(default=None, description="Gateway reference, set once paid")
    notes: str | None = Field(default=None, description="Customer notes")
    items: list[OrderItemResponse] = Field(
        default_factory=list,
        validation_alias=AliasChoices("order_items", "items"),
        description="Order lines",
    )
    created_at: datetime | None = Field(default=None, description="Creation timestamp")
    updated_at: datetime | None = Field(default=None, description="Last update timestamp")


class OrderListResponse(BaseModel):
    """Schema for order list API responses."""

    items: list[OrderResponse] = Field(description="List of orders")


class OrderCreatedResponse(BaseModel):
    """Response for a successful checkout."""

    message: str = Field(default="Order created successfully")
    order: OrderResponse


class OrderStatusUpdate(BaseModel):
    """Schema for PUT /orders/{id}/status."""

    status: OrderStatus = Field(description="Requested status")


class OrderStatusUpdateResponse(BaseModel):
    """Response for a status change."""

    message: str = Field(description="Outcome message")
    order: OrderResponse
    allowed_transitions: list[OrderStatus] = Field(description="Statuses reachable from the new status")


class OrderStatistics(BaseModel):
    """Aggregate order counts per status and confirmed revenue."""

    total_orders: int = Field(description="All orders of the store")
    pending_orders: int = Field(description="Orders awaiting payment")
    paid_orders: int = Field(description="Paid orders")
    shipped_orders: int = Field(description="Shipped orders")
    completed_orders: int = Field(description="Completed orders")
    cancelled_orders: int = Field(description="Cancelled orders")
    total_revenue: Decimal = Field(description="Sum of paid, shipped and completed order totals")
