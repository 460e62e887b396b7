"""Store-owner order administration: list, inspect, move through statuses, delete."""

import logging
from datetime import date
from decimal import Decimal

from miles.api.middleware.error_handler import ConflictError, OrderNotFoundError
from miles.models.order import REVENUE_STATUSES, Order, OrderStatus
from miles.services.notification_service import OrderEventDispatcher, OrderStatusChanged
from miles.services.order_repository import OrderRepository
from miles.services.order_state_machine import ensure_transition
from miles.services.settlement_service import SettlementService

logger = logging.getLogger(__name__)


class OrderAdminService:
    """Order operations scoped to the caller's store."""

    def __init__(
        self,
        repository: OrderRepository | None = None,
        settlement: SettlementService | None = None,
        dispatcher: OrderEventDispatcher | None = None,
    ) -> None:
        self.repository = repository or OrderRepository()
        self.dispatcher = dispatcher or OrderEventDispatcher()
        self.settlement = settlement or SettlementService(
            repository=self.repository, dispatcher=self.dispatcher
        )

    async def list_orders(
        self,
        store_id: int,
        status: OrderStatus | None = None,
        date_from: date | None = None,
    ) -> list[Order]:
        """List the store's orders, newest first."""
        return await self.repository.list_by_store(store_id, status=status, date_from=date_from)

    async def get_order(self, store_id: int, order_id: int) -> Order:
        """Get one of the store's orders.

        Raises:
            OrderNotFoundError: If missing or owned by another store.
        """
        order = await self.repository.find_by_id(order_id, store_id=store_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def update_status(self, store_id: int, order_id: int, new_status: OrderStatus) -> tuple[Order, bool]:
        """Move an order to a new status.

        Setting the current status again is accepted and changes nothing.
        Marking a pending order paid (e.g. cash collected on delivery) goes
        through settlement so that stock is deducted exactly once.

        Args:
            store_id: Caller's store.
            order_id: Order ID.
            new_status: Requested status.

        Returns:
            tuple: (order, changed).

        Raises:
            OrderNotFoundError: If missing or owned by another store.
            InvalidTransitionError: If the transition is not allowed.
            ConflictError: If the order changed concurrently.
        """
        new_status = OrderStatus(new_status)
        order = await self.get_order(store_id, order_id)
        current = order["status"]

        if current == new_status:
            return order, False

        ensure_transition(current, new_status)

        if new_status == OrderStatus.PAID:
            result = await self.settlement.settle(order_id, order.get("payment_reference"))
            if not result.settled:
                raise ConflictError("Order was settled concurrently")
            logger.info("Order %s marked paid by store %s", order["order_number"], store_id)
            return result.order, True

        updated = await self.repository.update_status(order_id, new_status, expected_status=current)
        if updated is None:
            raise ConflictError("Order status changed concurrently, reload and retry")

        logger.info(
            "Order %s status changed %s -> %s by store %s",
            order["order_number"],
            current.value,
            new_status.value,
            store_id,
        )
        await self.dispatcher.publish(
            OrderStatusChanged(order=updated, previous_status=current, new_status=new_status)
        )
        return updated, True

    async def delete_order(self, store_id: int, order_id: int) -> None:
        """Delete one of the store's orders together with its items.

        Raises:
            OrderNotFoundError: If missing or owned by another store.
        """
        if not await self.repository.delete(order_id, store_id):
            raise OrderNotFoundError(order_id)

    async def get_statistics(self, store_id: int) -> dict:
        """Count orders per status and sum confirmed revenue."""
        rows = await self.repository.status_summary(store_id)

        counts = {status: 0 for status in OrderStatus}
        revenue = Decimal("0.00")
        for row in rows:
            status = OrderStatus(row["status"])
            counts[status] += 1
            if status in REVENUE_STATUSES:
                revenue += Decimal(str(row["total_amount"]))

        return {
            "total_orders": len(rows),
            "pending_orders": counts[OrderStatus.PENDING],
            "paid_orders": counts[OrderStatus.PAID],
            "shipped_orders": counts[OrderStatus.SHIPPED],
            "completed_orders": counts[OrderStatus.COMPLETED],
            "cancelled_orders": counts[OrderStatus.CANCELLED],
            "total_revenue": revenue.quantize(Decimal("0.01")),
        }
