"""Payment settlement: reconcile a successful payment with exactly one order, once."""

import logging
from dataclasses import dataclass

from miles.api.middleware.error_handler import OrderNotFoundError
from miles.models.order import Order, OrderStatus
from miles.services.notification_service import OrderEventDispatcher, OrderStatusChanged
from miles.services.order_repository import OrderRepository
from miles.services.order_state_machine import SETTLED_STATUSES, ensure_transition

logger = logging.getLogger(__name__)


@dataclass
class SettlementResult:
    """Outcome of a settlement attempt.

    ``settled`` is False when the order had already been settled earlier;
    callers report success either way.
    """

    order: Order
    settled: bool

    @property
    def already_settled(self) -> bool:
        return not self.settled


class SettlementService:
    """Marks orders paid and deducts their stock in one database transaction."""

    def __init__(
        self,
        repository: OrderRepository | None = None,
        dispatcher: OrderEventDispatcher | None = None,
    ) -> None:
        self.repository = repository or OrderRepository()
        self.dispatcher = dispatcher or OrderEventDispatcher()

    async def settle(self, order_id: int, payment_reference: str | None) -> SettlementResult:
        """Settle a successful payment for an order.

        Safe to call any number of times for the same payment: stock is
        decremented only by the call that actually moves the order from
        pending to paid.

        Args:
            order_id: Order ID taken from the gateway metadata.
            payment_reference: Gateway reference (payment intent ID).

        Returns:
            SettlementResult: The order and whether this call settled it.

        Raises:
            OrderNotFoundError: If the order does not exist.
            InvalidTransitionError: If the order can no longer be paid (e.g. cancelled).
        """
        order = await self.repository.find_by_id(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)

        if order["status"] in SETTLED_STATUSES:
            logger.info(
                "Order %s already %s, skipping settlement",
                order["order_number"],
                order["status"].value,
            )
            return SettlementResult(order=order, settled=False)

        ensure_transition(order["status"], OrderStatus.PAID)

        settled, updated = await self.repository.settle_payment(order_id, payment_reference)
        if updated is None:
            raise OrderNotFoundError(order_id)

        if not settled:
            # Lost the race to a concurrent settlement, or the order moved on.
            if updated["status"] not in SETTLED_STATUSES:
                ensure_transition(updated["status"], OrderStatus.PAID)
            logger.info("Order %s settled concurrently, no stock change", updated["order_number"])
            return SettlementResult(order=updated, settled=False)

        for item in updated["order_items"]:
            logger.info(
                "Stock reduced for product %s (%s) by %s",
                item["product_id"],
                item["product_name"],
                item["quantity"],
            )
        logger.info(
            "Payment settled for order %s, reference %s, amount %s",
            updated["order_number"],
            payment_reference,
            updated["total_amount"],
        )

        await self.dispatcher.publish(
            OrderStatusChanged(
                order=updated,
                previous_status=OrderStatus.PENDING,
                new_status=OrderStatus.PAID,
            )
        )
        return SettlementResult(order=updated, settled=True)
