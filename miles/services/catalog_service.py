"""Catalog accessor: product lookup, stock mutation and store ownership."""

import logging
from decimal import Decimal
from typing import Any
from uuid import UUID

from supabase import Client

from miles.core.supabase import get_supabase_client
from miles.models.product import Product, Store

logger = logging.getLogger(__name__)


def _to_product(row: dict[str, Any]) -> Product:
    """Normalize a PostgREST products row (numeric columns arrive as JSON numbers)."""
    return Product(
        id=int(row["id"]),
        store_id=int(row["store_id"]),
        name=row["name"],
        price=Decimal(str(row["price"])).quantize(Decimal("0.01")),
        stock_quantity=int(row.get("stock_quantity") or 0),
        is_active=bool(row.get("is_active", False)),
    )


class CatalogService:
    """Read access to products and stores, plus the atomic stock decrement."""

    def __init__(self, supabase_client: Client | None = None) -> None:
        """Initialize catalog service.

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

    async def get_active_product(self, store_id: int, product_id: int) -> Product | None:
        """Get a product that belongs to ``store_id`` and is active.

        Args:
            store_id: Owning store ID.
            product_id: Product ID.

        Returns:
            Product or None if missing, inactive, or owned by another store.
        """
        response = (
            self.supabase.table("products")
            .select("id, store_id, name, price, stock_quantity, is_active")
            .eq("id", product_id)
            .eq("store_id", store_id)
            .eq("is_active", True)
            .maybe_single()
            .execute()
        )

        if not response or not response.data:
            return None
        return _to_product(response.data)

    async def decrement_stock(self, product_id: int, quantity: int) -> int:
        """Atomically decrement stock, clamped at zero.

        Runs the decrement_product_stock database function, a single
        ``UPDATE ... SET stock_quantity = GREATEST(stock_quantity - n, 0)``.

        Args:
            product_id: Product ID.
            quantity: Units to remove (positive).

        Returns:
            int: Stock remaining after the decrement.

        Raises:
            ValueError: If quantity is not positive.
        """
        if quantity <= 0:
            raise ValueError("quantity must be positive")

        response = self.supabase.rpc(
            "decrement_product_stock",
            {"p_product_id": product_id, "p_quantity": quantity},
        ).execute()

        new_stock = int(response.data or 0)
        logger.info(
            "Stock reduced for product %s by %s, new stock %s",
            product_id,
            quantity,
            new_stock,
        )
        return new_stock

    async def get_store(self, store_id: int) -> Store | None:
        """Get a store by ID."""
        response = (
            self.supabase.table("stores")
            .select("id, user_id, store_name, store_slug")
            .eq("id", store_id)
            .limit(1)
            .execute()
        )

        if not response.data:
            return None
        return response.data[0]

    async def get_store_for_owner(self, user_id: UUID) -> Store | None:
        """Get the store owned by an authenticated user.

        Args:
            user_id: Owner's auth user ID.

        Returns:
            Store or None if the user owns no store.
        """
        response = (
            self.supabase.table("stores")
            .select("id, user_id, store_name, store_slug")
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )

        if not response.data:
            return None
        return response.data[0]
