"""Order factory: turns a checkout request into a persisted pending order."""

import logging
import secrets
from collections import defaultdict
from decimal import Decimal
from uuid import UUID

from miles.api.middleware.error_handler import (
    APIError,
    InsufficientStockError,
    ProductUnavailableError,
)
from miles.core.config import get_settings
from miles.models.order import Order, OrderCreate, OrderItemCreate, OrderStatus
from miles.models.product import Product
from miles.schemas.order import CheckoutRequest
from miles.services.catalog_service import CatalogService
from miles.services.notification_service import OrderCreated, OrderEventDispatcher
from miles.services.order_repository import OrderRepository

logger = logging.getLogger(__name__)

ORDER_NUMBER_PREFIX = "ORD-"


def generate_order_number() -> str:
    """Build an order number candidate, e.g. ``ORD-9F1C22A07B3E``."""
    return ORDER_NUMBER_PREFIX + secrets.token_hex(6).upper()


class OrderFactory:
    """Validates checkout requests against the catalog and creates orders.

    Stock is checked here but not reserved; it is only decremented when a
    payment is settled.
    """

    def __init__(
        self,
        catalog: CatalogService | None = None,
        repository: OrderRepository | None = None,
        dispatcher: OrderEventDispatcher | None = None,
    ) -> None:
        self.catalog = catalog or CatalogService()
        self.repository = repository or OrderRepository()
        self.dispatcher = dispatcher or OrderEventDispatcher()
        self.settings = get_settings()

    async def create_order(self, request: CheckoutRequest, customer_id: UUID | None = None) -> Order:
        """Create a pending order and its items.

        Args:
            request: Validated checkout request.
            customer_id: Authenticated customer, None for guest checkout.

        Returns:
            Order: The persisted order with items.

        Raises:
            ProductUnavailableError: A product is missing, inactive, or from another store.
            InsufficientStockError: A product has less stock than requested.
        """
        products: dict[int, Product] = {}
        requested: dict[int, int] = defaultdict(int)

        for line in request.items:
            if line.product_id not in products:
                product = await self.catalog.get_active_product(request.store_id, line.product_id)
                if product is None:
                    raise ProductUnavailableError(line.product_id)
                products[line.product_id] = product
            requested[line.product_id] += line.quantity

        for product_id, quantity in requested.items():
            product = products[product_id]
            if product["stock_quantity"] < quantity:
                raise InsufficientStockError(
                    product_name=product["name"],
                    available=product["stock_quantity"],
                    requested=quantity,
                )

        items: list[OrderItemCreate] = []
        total_amount = Decimal("0.00")
        for line in request.items:
            product = products[line.product_id]
            line_total = product["price"] * line.quantity
            total_amount += line_total
            items.append(
                OrderItemCreate(
                    product_id=product["id"],
                    product_name=product["name"],
                    unit_price=product["price"],
                    quantity=line.quantity,
                    total_price=line_total,
                )
            )

        order_data = OrderCreate(
            store_id=request.store_id,
            customer_id=customer_id,
            order_number=await self._unique_order_number(),
            customer_name=request.customer_name,
            customer_email=request.customer_email,
            customer_phone=request.customer_phone,
            customer_address=request.customer_address,
            total_amount=total_amount,
            status=OrderStatus.PENDING,
            payment_method=request.payment_method,
            notes=request.notes,
        )

        order = await self.repository.create(order_data, items)
        logger.info(
            "Order %s created for store %s, total %s",
            order["order_number"],
            request.store_id,
            order["total_amount"],
        )

        await self.dispatcher.publish(OrderCreated(order=order))
        return order

    async def _unique_order_number(self) -> str:
        """Generate order numbers until one is not in use.

        Raises:
            APIError: If every attempt collided.
        """
        for _ in range(self.settings.order_number_max_attempts):
            candidate = generate_order_number()
            if not await self.repository.order_number_exists(candidate):
                return candidate
            logger.warning("Order number collision on %s, retrying", candidate)

        raise APIError("Could not allocate an order number")
