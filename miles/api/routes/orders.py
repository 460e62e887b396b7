"""Store-owner order administration routes."""

from datetime import date

from fastapi import APIRouter, Query, status

from miles.api.deps import OrderAdminDep, StoreOwner
from miles.models.order import OrderStatus
from miles.schemas.common import MessageResponse
from miles.schemas.order import (
    OrderListResponse,
    OrderResponse,
    OrderStatistics,
    OrderStatusUpdate,
    OrderStatusUpdateResponse,
)
from miles.services.order_state_machine import allowed_transitions

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get(
    "",
    response_model=OrderListResponse,
    summary="List store orders",
    description="List the caller's store orders, newest first, optionally filtered.",
)
async def list_orders(
    store: StoreOwner,
    service: OrderAdminDep,
    status_filter: OrderStatus | None = Query(default=None, alias="status", description="Filter by status"),
    date_from: date | None = Query(default=None, description="Only orders created on or after this date"),
) -> OrderListResponse:
    """List orders of the caller's store."""
    orders = await service.list_orders(store["id"], status=status_filter, date_from=date_from)
    return OrderListResponse(items=[OrderResponse.model_validate(o) for o in orders])


@router.get(
    "/statistics",
    response_model=OrderStatistics,
    summary="Order statistics",
    description="Order counts per status and revenue from paid, shipped and completed orders.",
)
async def get_statistics(store: StoreOwner, service: OrderAdminDep) -> OrderStatistics:
    """Aggregate the store's orders."""
    stats = await service.get_statistics(store["id"])
    return OrderStatistics(**stats)


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get store order",
    responses={404: {"description": "Order not found"}},
)
async def get_order(order_id: int, store: StoreOwner, service: OrderAdminDep) -> OrderResponse:
    """Get one order of the caller's store."""
    order = await service.get_order(store["id"], order_id)
    return OrderResponse.model_validate(order)


@router.put(
    "/{order_id}/status",
    response_model=OrderStatusUpdateResponse,
    summary="Update order status",
    description="Move an order along pending -> paid -> shipped -> completed, or cancel it.",
    responses={
        404: {"description": "Order not found"},
        409: {"description": "Order changed concurrently"},
        422: {"description": "Transition not allowed"},
    },
)
async def update_order_status(
    order_id: int,
    data: OrderStatusUpdate,
    store: StoreOwner,
    service: OrderAdminDep,
) -> OrderStatusUpdateResponse:
    """Change an order's status.

    Args:
        order_id: Order ID.
        data: Requested status.
        store: Caller's store.
        service: Order admin service.

    Returns:
        OrderStatusUpdateResponse: Updated order and the statuses now reachable.
    """
    order, changed = await service.update_status(store["id"], order_id, data.status)
    message = (
        f"Order status updated to {data.status.value}"
        if changed
        else f"Order is already {data.status.value}"
    )
    return OrderStatusUpdateResponse(
        message=message,
        order=OrderResponse.model_validate(order),
        allowed_transitions=sorted(allowed_transitions(order["status"]), key=lambda s: s.value),
    )


@router.delete(
    "/{order_id}",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
    summary="Delete store order",
    responses={404: {"description": "Order not found"}},
)
async def delete_order(order_id: int, store: StoreOwner, service: OrderAdminDep) -> MessageResponse:
    """Delete an order of the caller's store together with its items."""
    await service.delete_order(store["id"], order_id)
    return MessageResponse(message="Order deleted successfully")
