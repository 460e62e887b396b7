"""Customer-facing order operations."""

import logging
from uuid import UUID

from miles.api.middleware.error_handler import ConflictError, OrderNotFoundError
from miles.models.order import Order, OrderStatus
from miles.services.notification_service import OrderEventDispatcher, OrderStatusChanged
from miles.services.order_repository import OrderRepository
from miles.services.order_state_machine import ensure_customer_can_cancel

logger = logging.getLogger(__name__)


class CustomerOrderService:
    """Order history, receipts and self-service cancellation for customers."""

    def __init__(
        self,
        repository: OrderRepository | None = None,
        dispatcher: OrderEventDispatcher | None = None,
    ) -> None:
        self.repository = repository or OrderRepository()
        self.dispatcher = dispatcher or OrderEventDispatcher()

    async def list_orders(self, customer_id: UUID) -> list[Order]:
        """List the customer's own orders, newest first."""
        return await self.repository.list_by_customer(customer_id)

    async def get_order(self, customer_id: UUID, order_id: int) -> Order:
        """Get one of the customer's own orders.

        Raises:
            OrderNotFoundError: If missing or placed by someone else.
        """
        order = await self.repository.find_by_id(order_id, customer_id=customer_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def get_public_order(self, order_id: int) -> Order:
        """Get any order by ID without authentication (receipt page).

        Raises:
            OrderNotFoundError: If the order does not exist.
        """
        # TODO: look receipts up by order_number plus email instead of the sequential id
        order = await self.repository.find_by_id(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def cancel_order(self, customer_id: UUID, order_id: int) -> Order:
        """Cancel the customer's own order while it is still pending.

        Raises:
            OrderNotFoundError: If missing or placed by someone else.
            InvalidTransitionError: If the order is no longer pending.
            ConflictError: If the order was paid or cancelled concurrently.
        """
        order = await self.get_order(customer_id, order_id)
        ensure_customer_can_cancel(order["status"])

        updated = await self.repository.update_status(
            order_id, OrderStatus.CANCELLED, expected_status=OrderStatus.PENDING
        )
        if updated is None:
            raise ConflictError("Order status changed concurrently, reload and retry")

        logger.info("Order %s cancelled by customer %s", order["order_number"], customer_id)
        await self.dispatcher.publish(
            OrderStatusChanged(
                order=updated,
                previous_status=OrderStatus.PENDING,
                new_status=OrderStatus.CANCELLED,
            )
        )
        return updated
