"""Catalog type definitions consumed by the order core."""

from decimal import Decimal
from typing import TypedDict


class Product(TypedDict):
    """products table row, limited to the columns the order core reads."""

    id: int
    store_id: int
    name: str
    price: Decimal
    stock_quantity: int
    is_active: bool


class Store(TypedDict):
    """stores table row, limited to ownership columns."""

    id: int
    user_id: str
    store_name: str
    store_slug: str
