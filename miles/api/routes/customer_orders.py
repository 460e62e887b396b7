"""Customer order routes: history, detail, cancellation and public receipts."""

from fastapi import APIRouter

from miles.api.deps import CurrentUser, CustomerOrdersDep
from miles.schemas.order import OrderListResponse, OrderResponse

router = APIRouter(prefix="/customer/orders", tags=["customer-orders"])
public_router = APIRouter(prefix="/public/orders", tags=["customer-orders"])


@router.get(
    "",
    response_model=OrderListResponse,
    summary="List my orders",
    description="List orders placed by the authenticated customer, newest first.",
)
async def list_my_orders(user: CurrentUser, service: CustomerOrdersDep) -> OrderListResponse:
    """List the caller's orders."""
    orders = await service.list_orders(user.user_id)
    return OrderListResponse(items=[OrderResponse.model_validate(o) for o in orders])


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get my order",
    responses={404: {"description": "Order not found"}},
)
async def get_my_order(order_id: int, user: CurrentUser, service: CustomerOrdersDep) -> OrderResponse:
    """Get one of the caller's orders."""
    order = await service.get_order(user.user_id, order_id)
    return OrderResponse.model_validate(order)


@router.put(
    "/{order_id}/cancel",
    response_model=OrderResponse,
    summary="Cancel my order",
    description="Cancel an order that has not been paid yet.",
    responses={
        404: {"description": "Order not found"},
        409: {"description": "Order changed concurrently"},
        422: {"description": "Order is no longer pending"},
    },
)
async def cancel_my_order(order_id: int, user: CurrentUser, service: CustomerOrdersDep) -> OrderResponse:
    """Cancel one of the caller's pending orders.

    Args:
        order_id: Order ID.
        user: Authenticated customer.
        service: Customer order service.

    Returns:
        OrderResponse: The cancelled order.
    """
    order = await service.cancel_order(user.user_id, order_id)
    return OrderResponse.model_validate(order)


@public_router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get order receipt",
    description="Unauthenticated order lookup used by the order confirmation page.",
    responses={404: {"description": "Order not found"}},
)
async def get_public_order(order_id: int, service: CustomerOrdersDep) -> OrderResponse:
    """Get an order receipt without authentication."""
    order = await service.get_public_order(order_id)
    return OrderResponse.model_validate(order)
