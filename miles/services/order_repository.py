"""Order store: persistence of orders and their items in Supabase.

Multi-row units of work (order + items creation, status + stock settlement)
run inside Postgres functions invoked through ``rpc`` so that each one commits
or rolls back as a whole. See supabase/migrations for their definitions.
"""

import json
import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from supabase import Client

from miles.core.supabase import get_supabase_client
from miles.models.order import (
    Order,
    OrderCreate,
    OrderItem,
    OrderItemCreate,
    OrderStatus,
    PaymentMethod,
)

logger = logging.getLogger(__name__)

ORDER_COLUMNS = "*, order_items(*)"

CENT = Decimal("0.01")


def _money(value: Any) -> Decimal:
    return Decimal(str(value)).quantize(CENT)


def _to_item(row: dict[str, Any]) -> OrderItem:
    return OrderItem(
        id=int(row["id"]),
        order_id=int(row["order_id"]),
        product_id=int(row["product_id"]) if row.get("product_id") is not None else None,
        product_name=row["product_name"],
        unit_price=_money(row["unit_price"]),
        quantity=int(row["quantity"]),
        total_price=_money(row["total_price"]),
    )


def to_order(row: dict[str, Any]) -> Order:
    """Normalize a PostgREST/RPC order row into an Order.

    Args:
        row: Raw row, optionally with an embedded ``order_items`` list.

    Returns:
        Order: Row with enum status, Decimal money and typed items.
    """
    order = dict(row)
    order["id"] = int(row["id"])
    order["store_id"] = int(row["store_id"])
    order["customer_id"] = UUID(str(row["customer_id"])) if row.get("customer_id") else None
    order["total_amount"] = _money(row["total_amount"])
    order["status"] = OrderStatus(row["status"])
    order["payment_method"] = PaymentMethod(row["payment_method"])
    order["order_items"] = [_to_item(item) for item in row.get("order_items") or []]
    return order


def _serialize(value: Any) -> Any:
    """Make a value JSON-safe for PostgREST payloads."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def _payload(data: dict[str, Any]) -> dict[str, Any]:
    return {key: _serialize(value) for key, value in data.items()}


class OrderRepository:
    """Durable CRUD for orders and order items."""

    def __init__(self, supabase_client: Client | None = None) -> None:
        """Initialize order repository.

        Args:
            supabase_client: Optional Supabase client for testing.
        """
        self._supabase_client = supabase_client

    @property
    def supabase(self) -> Client:
        """Get Supabase client."""
        if self._supabase_client is None:
            self._supabase_client = get_supabase_client()
        return self._supabase_client

    async def create(self, order: OrderCreate, items: list[OrderItemCreate]) -> Order:
        """Insert an order together with its items in one transaction.

        Args:
            order: Order columns.
            items: Item rows (without order_id).

        Returns:
            Order: The persisted order with items.

        Raises:
            ValueError: If the database returned no row.
        """
        response = self.supabase.rpc(
            "create_order_with_items",
            {
                "p_order": _payload(dict(order)),
                "p_items": [_payload(dict(item)) for item in items],
            },
        ).execute()

        if not response.data:
            raise ValueError("Failed to create order")

        created = to_order(response.data)
        logger.info("Created order %s (%s)", created["id"], created["order_number"])
        return created

    async def find_by_id(
        self,
        order_id: int,
        store_id: int | None = None,
        customer_id: UUID | None = None,
    ) -> Order | None:
        """Get an order by ID, optionally scoped to a store or customer.

        Args:
            order_id: Order ID.
            store_id: When set, only an order of this store matches.
            customer_id: When set, only an order of this customer matches.

        Returns:
            Order or None if not found (or not visible under the given scope).
        """
        query = self.supabase.table("orders").select(ORDER_COLUMNS).eq("id", order_id)
        if store_id is not None:
            query = query.eq("store_id", store_id)
        if customer_id is not None:
            query = query.eq("customer_id", str(customer_id))

        response = query.maybe_single().execute()
        return to_order(response.data) if response and response.data else None

    async def find_by_order_number(self, order_number: str, store_id: int) -> Order | None:
        """Get an order by its human-readable number within a store."""
        response = (
            self.supabase.table("orders")
            .select(ORDER_COLUMNS)
            .eq("order_number", order_number)
            .eq("store_id", store_id)
            .maybe_single()
            .execute()
        )
        return to_order(response.data) if response and response.data else None

    async def find_by_payment_reference(self, reference: str) -> Order | None:
        """Get the order settled with a given gateway reference."""
        response = (
            self.supabase.table("orders")
            .select(ORDER_COLUMNS)
            .eq("payment_reference", reference)
            .maybe_single()
            .execute()
        )
        return to_order(response.data) if response and response.data else None

    async def order_number_exists(self, order_number: str) -> bool:
        """Check whether an order number is already taken."""
        response = (
            self.supabase.table("orders")
            .select("id")
            .eq("order_number", order_number)
            .limit(1)
            .execute()
        )
        return bool(response.data)

    async def list_by_store(
        self,
        store_id: int,
        status: OrderStatus | None = None,
        date_from: date | None = None,
    ) -> list[Order]:
        """List a store's orders, newest first.

        Args:
            store_id: Owning store ID.
            status: Optional status filter.
            date_from: Optional lower bound on the creation date (inclusive).

        Returns:
            list[Order]: Matching orders.
        """
        query = self.supabase.table("orders").select(ORDER_COLUMNS).eq("store_id", store_id)
        if status is not None:
            query = query.eq("status", OrderStatus(status).value)
        if date_from is not None:
            query = query.gte("created_at", date_from.isoformat())

        response = query.order("created_at", desc=True).execute()
        return [to_order(row) for row in response.data or []]

    async def list_by_customer(self, customer_id: UUID) -> list[Order]:
        """List a customer's orders, newest first."""
        response = (
            self.supabase.table("orders")
            .select(ORDER_COLUMNS)
            .eq("customer_id", str(customer_id))
            .order("created_at", desc=True)
            .execute()
        )
        return [to_order(row) for row in response.data or []]

    async def update_status(
        self,
        order_id: int,
        new_status: OrderStatus,
        expected_status: OrderStatus,
        payment_reference: str | None = None,
    ) -> Order | None:
        """Compare-and-set the status of an order.

        The update only applies while the row still has ``expected_status``,
        so a concurrent change makes it a no-op instead of a lost update.

        Args:
            order_id: Order ID.
            new_status: Status to set.
            expected_status: Status the caller validated the transition against.
            payment_reference: Optional gateway reference to record.

        Returns:
            Order or None when the row was not in ``expected_status`` any more.
        """
        update_data: dict[str, Any] = {
            "status": OrderStatus(new_status).value,
            "updated_at": datetime.utcnow().isoformat(),
        }
        if payment_reference is not None:
            update_data["payment_reference"] = payment_reference

        response = (
            self.supabase.table("orders")
            .update(update_data)
            .eq("id", order_id)
            .eq("status", OrderStatus(expected_status).value)
            .execute()
        )
        if not response.data:
            return None

        return await self.find_by_id(order_id)

    async def set_payment_reference(self, order_id: int, payment_reference: str) -> Order | None:
        """Record the gateway reference of a pending order.

        Returns:
            Order or None when the order is missing or no longer pending.
        """
        response = (
            self.supabase.table("orders")
            .update(
                {
                    "payment_reference": payment_reference,
                    "updated_at": datetime.utcnow().isoformat(),
                }
            )
            .eq("id", order_id)
            .eq("status", OrderStatus.PENDING.value)
            .execute()
        )
        if not response.data:
            return None

        return await self.find_by_id(order_id)

    async def settle_payment(self, order_id: int, payment_reference: str | None) -> tuple[bool, Order | None]:
        """Mark a pending order paid and decrement stock for its items, atomically.

        Runs the settle_order_payment database function. It locks the order
        row, flips ``pending -> paid`` and clamps every referenced product's
        stock at zero after subtracting the item quantity. If the order was
        no longer pending nothing is written.

        Args:
            order_id: Order ID.
            payment_reference: Gateway reference; kept unchanged when None.

        Returns:
            tuple: (settled, order). ``settled`` is False for an already-settled
            or non-pending order; ``order`` is None when the order does not exist.
        """
        response = self.supabase.rpc(
            "settle_order_payment",
            {"p_order_id": order_id, "p_payment_reference": payment_reference},
        ).execute()

        data = response.data
        if isinstance(data, str):
            data = json.loads(data)
        if not data or not data.get("order"):
            return False, None

        return bool(data.get("settled")), to_order(data["order"])

    async def delete(self, order_id: int, store_id: int) -> bool:
        """Delete a store's order; its items are removed by ON DELETE CASCADE.

        Returns:
            bool: True if a row was deleted.
        """
        response = (
            self.supabase.table("orders")
            .delete()
            .eq("id", order_id)
            .eq("store_id", store_id)
            .execute()
        )
        deleted = bool(response.data)
        if deleted:
            logger.info("Deleted order %s of store %s", order_id, store_id)
        return deleted

    async def status_summary(self, store_id: int) -> list[dict[str, Any]]:
        """Get status and total of every order of a store, for statistics."""
        response = (
            self.supabase.table("orders")
            .select("status, total_amount")
            .eq("store_id", store_id)
            .execute()
        )
        return response.data or []
