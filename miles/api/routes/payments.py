"""Payment routes: create intents and checkout sessions, confirm payments, query gateway state."""

from fastapi import APIRouter, status

from miles.api.deps import PaymentServiceDep
from miles.schemas.order import OrderResponse
from miles.schemas.payment import (
    CheckoutSessionCreate,
    CheckoutSessionResponse,
    PaymentConfirmRequest,
    PaymentConfirmResponse,
    PaymentIntentCreate,
    PaymentIntentResponse,
    PaymentStatusResponse,
)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post(
    "/intents",
    response_model=PaymentIntentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create payment intent",
    description="Create a Stripe PaymentIntent for a pending card or FPX order.",
    responses={
        404: {"description": "Order not found"},
        422: {"description": "Order not payable online"},
        503: {"description": "Payment gateway unavailable"},
    },
)
async def create_payment_intent(
    data: PaymentIntentCreate,
    service: PaymentServiceDep,
) -> PaymentIntentResponse:
    """Create a payment intent for the order's total."""
    result = await service.create_payment_intent(data.order_id)
    return PaymentIntentResponse(**result)


@router.post(
    "/checkout-sessions",
    response_model=CheckoutSessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create checkout session",
    description="Create a hosted Stripe Checkout page for a pending card or FPX order.",
    responses={
        404: {"description": "Order not found"},
        422: {"description": "Order not payable online"},
        503: {"description": "Payment gateway unavailable"},
    },
)
async def create_checkout_session(
    data: CheckoutSessionCreate,
    service: PaymentServiceDep,
) -> CheckoutSessionResponse:
    """Create a checkout session and return its redirect URL."""
    result = await service.create_checkout_session(data.order_id)
    return CheckoutSessionResponse(**result)


@router.post(
    "/confirm",
    response_model=PaymentConfirmResponse,
    summary="Confirm payment",
    description="Verify a payment with Stripe and settle the order. Safe to repeat.",
    responses={
        404: {"description": "Order not found"},
        422: {"description": "Payment not completed or not for this order"},
        503: {"description": "Payment gateway unavailable"},
    },
)
async def confirm_payment(
    data: PaymentConfirmRequest,
    service: PaymentServiceDep,
) -> PaymentConfirmResponse:
    """Confirm a client-side payment.

    Args:
        data: Order ID and payment intent ID.
        service: Payment service.

    Returns:
        PaymentConfirmResponse: The settled order.
    """
    result = await service.confirm_payment(data.order_id, data.payment_intent_id)
    return PaymentConfirmResponse(
        message="Payment already confirmed" if result.already_settled else "Payment confirmed",
        already_settled=result.already_settled,
        order=OrderResponse.model_validate(result.order),
    )


@router.get(
    "/intents/{reference}",
    response_model=PaymentStatusResponse,
    summary="Get payment status",
    responses={
        404: {"description": "Payment not found"},
        503: {"description": "Payment gateway unavailable"},
    },
)
async def get_payment_status(reference: str, service: PaymentServiceDep) -> PaymentStatusResponse:
    """Look up a payment intent at the gateway."""
    result = await service.get_payment_status(reference)
    return PaymentStatusResponse(**result)
