"""Payment Pydantic schemas for the gateway-facing API."""

from pydantic import BaseModel, Field

from miles.schemas.order import OrderResponse


class PaymentIntentCreate(BaseModel):
    """Schema for POST /payments/intents."""

    order_id: int = Field(gt=0, description="Pending order to collect payment for")


class PaymentIntentResponse(BaseModel):
    """Client-side handle for completing a payment."""

    client_secret: str = Field(description="Secret passed to Stripe.js to confirm the payment")
    payment_intent_id: str = Field(description="Stripe PaymentIntent ID")
    amount: int = Field(description="Amount in minor units (sen)")
    currency: str = Field(description="ISO currency code, lowercase")


class CheckoutSessionCreate(BaseModel):
    """Schema for POST /payments/checkout-sessions."""

    order_id: int = Field(gt=0, description="Pending order to collect payment for")


class CheckoutSessionResponse(BaseModel):
    """Hosted checkout page to redirect the customer to."""

    checkout_url: str = Field(description="Stripe Checkout URL")
    session_id: str = Field(description="Stripe Checkout Session ID, stored as the payment reference")
    amount: int = Field(description="Amount in minor units (sen)")
    currency: str = Field(description="ISO currency code, lowercase")


class PaymentConfirmRequest(BaseModel):
    """Schema for POST /payments/confirm."""

    order_id: int = Field(gt=0, description="Order the payment was made for")
    payment_intent_id: str = Field(min_length=1, description="Stripe PaymentIntent ID")


class PaymentConfirmResponse(BaseModel):
    """Outcome of a payment confirmation."""

    message: str = Field(description="Outcome message")
    already_settled: bool = Field(description="True if the order had been settled before this call")
    order: OrderResponse


class PaymentStatusResponse(BaseModel):
    """State of a payment at the gateway."""

    payment_intent_id: str = Field(description="Stripe PaymentIntent ID")
    status: str = Field(description="Stripe PaymentIntent status")
    amount: int = Field(description="Amount in minor units (sen)")
    currency: str = Field(description="ISO currency code, lowercase")
    order_id: int | None = Field(default=None, description="Order ID from the intent metadata")
