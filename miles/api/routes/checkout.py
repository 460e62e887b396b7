"""Checkout API route: turn a cart into a pending order."""

from fastapi import APIRouter, status

from miles.api.deps import OptionalUser, OrderFactoryDep
from miles.schemas.order import CheckoutRequest, OrderCreatedResponse, OrderResponse

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post(
    "/orders",
    response_model=OrderCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Place an order",
    description="Validates the cart against the store's catalog and creates a pending order. "
    "Guests may check out without signing in.",
    responses={
        404: {"description": "Product not found, inactive or from another store"},
        422: {"description": "Insufficient stock or invalid request"},
    },
)
async def create_order(
    data: CheckoutRequest,
    user: OptionalUser,
    factory: OrderFactoryDep,
) -> OrderCreatedResponse:
    """Create a pending order from the submitted cart.

    Stock is checked here but only deducted once the order is paid.

    Args:
        data: Customer details, items and payment method.
        user: Signed-in customer, or None for guest checkout.
        factory: Order factory.

    Returns:
        OrderCreatedResponse: The created order.
    """
    order = await factory.create_order(data, customer_id=user.user_id if user else None)
    return OrderCreatedResponse(order=OrderResponse.model_validate(order))
