"""Unit tests for OrderRepository."""

import json
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock
from uuid import UUID

import pytest

from miles.models.order import OrderStatus, PaymentMethod
from miles.services.order_repository import OrderRepository, to_order


def order_row(**overrides) -> dict:
    row = {
        "id": 1,
        "store_id": 1,
        "customer_id": "550e8400-e29b-41d4-a716-446655440000",
        "order_number": "ORD-9F1C22A07B3E",
        "customer_name": "Aisyah Rahman",
        "customer_email": "aisyah@example.com",
        "customer_phone": None,
        "customer_address": "12 Jalan Ampang, Kuala Lumpur",
        "total_amount": 90,
        "status": "pending",
        "payment_method": "stripe",
        "payment_reference": None,
        "notes": None,
        "created_at": "2026-01-01T09:00:00+00:00",
        "updated_at": "2026-01-01T09:00:00+00:00",
        "order_items": [
            {
                "id": 10,
                "order_id": 1,
                "product_id": 1,
                "product_name": "Kopi Arabica 1kg",
                "unit_price": 50,
                "quantity": 1,
                "total_price": 50,
            },
            {
                "id": 11,
                "order_id": 1,
                "product_id": None,
                "product_name": "Mug Seramik",
                "unit_price": "20.00",
                "quantity": 2,
                "total_price": "40.00",
            },
        ],
    }
    row.update(overrides)
    return row


@pytest.fixture
def mock_supabase() -> MagicMock:
    """Create a mock Supabase client."""
    return MagicMock()


@pytest.fixture
def repository(mock_supabase: MagicMock) -> OrderRepository:
    """Create OrderRepository with a mocked client."""
    return OrderRepository(supabase_client=mock_supabase)


class TestToOrder:
    """Tests for row normalization."""

    def test_normalizes_types(self) -> None:
        """Test that money, status, method and IDs get their Python types."""
        order = to_order(order_row())

        assert order["total_amount"] == Decimal("90.00")
        assert order["status"] is OrderStatus.PENDING
        assert order["payment_method"] is PaymentMethod.STRIPE
        assert order["customer_id"] == UUID("550e8400-e29b-41d4-a716-446655440000")
        assert order["order_items"][0]["unit_price"] == Decimal("50.00")
        assert order["order_items"][1]["product_id"] is None

    def test_guest_order_has_no_customer(self) -> None:
        """Test that guest orders keep customer_id None."""
        assert to_order(order_row(customer_id=None))["customer_id"] is None


class TestCreate:
    """Tests for OrderRepository.create."""

    @pytest.mark.asyncio
    async def test_creates_via_rpc(self, repository: OrderRepository, mock_supabase: MagicMock) -> None:
        """Test that order and items are sent to create_order_with_items as JSON-safe values."""
        mock_supabase.rpc.return_value.execute.return_value = MagicMock(data=order_row())

        order = await repository.create(
            {
                "store_id": 1,
                "customer_id": UUID("550e8400-e29b-41d4-a716-446655440000"),
                "total_amount": Decimal("90.00"),
                "status": OrderStatus.PENDING,
                "payment_method": PaymentMethod.STRIPE,
            },
            [{"product_id": 1, "product_name": "Kopi", "unit_price": Decimal("50.00"), "quantity": 1, "total_price": Decimal("50.00")}],
        )

        name, params = mock_supabase.rpc.call_args.args
        assert name == "create_order_with_items"
        assert params["p_order"]["total_amount"] == "90.00"
        assert params["p_order"]["status"] == "pending"
        assert params["p_order"]["customer_id"] == "550e8400-e29b-41d4-a716-446655440000"
        assert params["p_items"][0]["unit_price"] == "50.00"
        json.dumps(params)
        assert order["id"] == 1

    @pytest.mark.asyncio
    async def test_raises_when_nothing_returned(self, repository: OrderRepository, mock_supabase: MagicMock) -> None:
        """Test that an empty RPC result raises ValueError."""
        mock_supabase.rpc.return_value.execute.return_value = MagicMock(data=None)

        with pytest.raises(ValueError, match="Failed to create order"):
            await repository.create({"store_id": 1}, [])


class TestFind:
    """Tests for lookups."""

    @pytest.mark.asyncio
    async def test_find_by_id_scoped_to_store(self, repository: OrderRepository, mock_supabase: MagicMock) -> None:
        """Test that a store scope adds a store_id filter."""
        query = mock_supabase.table.return_value.select.return_value.eq.return_value
        query.eq.return_value.maybe_single.return_value.execute.return_value = MagicMock(data=order_row())

        order = await repository.find_by_id(1, store_id=1)

        mock_supabase.table.assert_called_with("orders")
        query.eq.assert_called_once_with("store_id", 1)
        assert order["order_number"] == "ORD-9F1C22A07B3E"

    @pytest.mark.asyncio
    async def test_find_by_id_returns_none_when_missing(
        self, repository: OrderRepository, mock_supabase: MagicMock
    ) -> None:
        """Test that maybe_single returning None yields None."""
        query = mock_supabase.table.return_value.select.return_value.eq.return_value
        query.maybe_single.return_value.execute.return_value = None

        assert await repository.find_by_id(99) is None

    @pytest.mark.asyncio
    async def test_find_by_order_number_scoped_to_store(
        self, repository: OrderRepository, mock_supabase: MagicMock
    ) -> None:
        """Test that order numbers are looked up within one store."""
        by_number = mock_supabase.table.return_value.select.return_value.eq.return_value
        by_number.eq.return_value.maybe_single.return_value.execute.return_value = MagicMock(data=order_row())

        order = await repository.find_by_order_number("ORD-9F1C22A07B3E", 1)

        mock_supabase.table.return_value.select.return_value.eq.assert_called_once_with(
            "order_number", "ORD-9F1C22A07B3E"
        )
        by_number.eq.assert_called_once_with("store_id", 1)
        assert order["id"] == 1

    @pytest.mark.asyncio
    async def test_find_by_payment_reference(self, repository: OrderRepository, mock_supabase: MagicMock) -> None:
        """Test the lookup by gateway reference."""
        chain = mock_supabase.table.return_value.select.return_value.eq.return_value.maybe_single.return_value
        chain.execute.return_value = MagicMock(data=order_row(status="paid", payment_reference="pi_123"))

        order = await repository.find_by_payment_reference("pi_123")

        assert order["payment_reference"] == "pi_123"
        assert order["status"] is OrderStatus.PAID

    @pytest.mark.asyncio
    async def test_order_number_exists(self, repository: OrderRepository, mock_supabase: MagicMock) -> None:
        """Test the order number existence check."""
        chain = mock_supabase.table.return_value.select.return_value.eq.return_value.limit.return_value
        chain.execute.return_value = MagicMock(data=[{"id": 1}])

        assert await repository.order_number_exists("ORD-9F1C22A07B3E") is True

    @pytest.mark.asyncio
    async def test_list_by_store_applies_filters(self, repository: OrderRepository, mock_supabase: MagicMock) -> None:
        """Test that status and date filters are applied and results ordered newest first."""
        base = mock_supabase.table.return_value.select.return_value.eq.return_value
        with_status = base.eq.return_value
        with_date = with_status.gte.return_value
        with_date.order.return_value.execute.return_value = MagicMock(data=[order_row()])

        orders = await repository.list_by_store(1, status=OrderStatus.PAID, date_from=date(2026, 1, 1))

        base.eq.assert_called_once_with("status", "paid")
        with_status.gte.assert_called_once_with("created_at", "2026-01-01")
        with_date.order.assert_called_once_with("created_at", desc=True)
        assert len(orders) == 1


class TestUpdateStatus:
    """Tests for the compare-and-set status update."""

    @pytest.mark.asyncio
    async def test_filters_on_expected_status(self, repository: OrderRepository, mock_supabase: MagicMock) -> None:
        """Test that the update only matches rows still in the expected status."""
        update = mock_supabase.table.return_value.update.return_value
        by_id = update.eq.return_value
        by_id.eq.return_value.execute.return_value = MagicMock(data=[])

        result = await repository.update_status(1, OrderStatus.SHIPPED, expected_status=OrderStatus.PAID)

        assert result is None
        update.eq.assert_called_once_with("id", 1)
        by_id.eq.assert_called_once_with("status", "paid")
        payload = mock_supabase.table.return_value.update.call_args.args[0]
        assert payload["status"] == "shipped"


class TestSetPaymentReference:
    """Tests for recording a gateway reference on a pending order."""

    @pytest.mark.asyncio
    async def test_only_pending_orders_are_updated(self, repository: OrderRepository, mock_supabase: MagicMock) -> None:
        """Test that the reference is written only while the order is pending."""
        update = mock_supabase.table.return_value.update.return_value
        by_id = update.eq.return_value
        by_id.eq.return_value.execute.return_value = MagicMock(data=[])

        result = await repository.set_payment_reference(1, "cs_123")

        assert result is None
        update.eq.assert_called_once_with("id", 1)
        by_id.eq.assert_called_once_with("status", "pending")
        payload = mock_supabase.table.return_value.update.call_args.args[0]
        assert payload["payment_reference"] == "cs_123"


class TestSettlePayment:
    """Tests for OrderRepository.settle_payment."""

    @pytest.mark.asyncio
    async def test_settled(self, repository: OrderRepository, mock_supabase: MagicMock) -> None:
        """Test that the settle_order_payment result is unpacked."""
        mock_supabase.rpc.return_value.execute.return_value = MagicMock(
            data={"settled": True, "order": order_row(status="paid", payment_reference="pi_123")}
        )

        settled, order = await repository.settle_payment(1, "pi_123")

        mock_supabase.rpc.assert_called_once_with(
            "settle_order_payment", {"p_order_id": 1, "p_payment_reference": "pi_123"}
        )
        assert settled is True
        assert order["status"] is OrderStatus.PAID

    @pytest.mark.asyncio
    async def test_already_settled_json_string(self, repository: OrderRepository, mock_supabase: MagicMock) -> None:
        """Test that a JSON string result is decoded."""
        mock_supabase.rpc.return_value.execute.return_value = MagicMock(
            data=json.dumps({"settled": False, "order": order_row(status="paid")})
        )

        settled, order = await repository.settle_payment(1, "pi_123")

        assert settled is False
        assert order["status"] is OrderStatus.PAID

    @pytest.mark.asyncio
    async def test_missing_order(self, repository: OrderRepository, mock_supabase: MagicMock) -> None:
        """Test that an unknown order yields (False, None)."""
        mock_supabase.rpc.return_value.execute.return_value = MagicMock(data={"settled": False, "order": None})

        assert await repository.settle_payment(404, "pi_123") == (False, None)


class TestDelete:
    """Tests for OrderRepository.delete."""

    @pytest.mark.asyncio
    async def test_delete_scoped_to_store(self, repository: OrderRepository, mock_supabase: MagicMock) -> None:
        """Test that deletes filter on both order and store."""
        by_id = mock_supabase.table.return_value.delete.return_value.eq.return_value
        by_id.eq.return_value.execute.return_value = MagicMock(data=[{"id": 1}])

        assert await repository.delete(1, 1) is True
        by_id.eq.assert_called_once_with("store_id", 1)
