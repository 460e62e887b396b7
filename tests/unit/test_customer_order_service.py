"""Unit tests for CustomerOrderService."""

import pytest

from miles.api.middleware.error_handler import InvalidTransitionError, OrderNotFoundError
from miles.models.order import OrderStatus
from tests.fakes import CUSTOMER_ID, OTHER_CUSTOMER_ID


class TestCustomerOrders:
    """Tests for customer order history and receipts."""

    @pytest.mark.asyncio
    async def test_lists_only_own_orders(self, customer_service, order_repository) -> None:
        """Test that customers see only their own orders."""
        own = order_repository.insert(customer_id=CUSTOMER_ID)
        order_repository.insert(customer_id=OTHER_CUSTOMER_ID)
        order_repository.insert()

        orders = await customer_service.list_orders(CUSTOMER_ID)

        assert [o["id"] for o in orders] == [own["id"]]

    @pytest.mark.asyncio
    async def test_other_customer_order_is_not_found(self, customer_service, order_repository) -> None:
        """Test that another customer's order looks missing."""
        order = order_repository.insert(customer_id=OTHER_CUSTOMER_ID)

        with pytest.raises(OrderNotFoundError):
            await customer_service.get_order(CUSTOMER_ID, order["id"])

    @pytest.mark.asyncio
    async def test_public_lookup_needs_no_owner(self, customer_service, order_repository) -> None:
        """Test that the receipt lookup returns guest orders."""
        order = order_repository.insert()

        found = await customer_service.get_public_order(order["id"])

        assert found["order_number"] == order["order_number"]

    @pytest.mark.asyncio
    async def test_public_lookup_of_missing_order(self, customer_service) -> None:
        """Test that an unknown ID raises OrderNotFoundError."""
        with pytest.raises(OrderNotFoundError):
            await customer_service.get_public_order(12345)


class TestCancelOrder:
    """Tests for CustomerOrderService.cancel_order."""

    @pytest.mark.asyncio
    async def test_cancels_own_pending_order(self, customer_service, order_repository, notifier) -> None:
        """Test that a pending order becomes cancelled."""
        order = order_repository.insert(customer_id=CUSTOMER_ID)

        cancelled = await customer_service.cancel_order(CUSTOMER_ID, order["id"])

        assert cancelled["status"] == OrderStatus.CANCELLED
        assert notifier.kinds() == ["status:pending->cancelled"]

    @pytest.mark.asyncio
    async def test_paid_order_cannot_be_cancelled(self, customer_service, order_repository) -> None:
        """Test that customers cannot cancel after payment."""
        order = order_repository.insert(customer_id=CUSTOMER_ID, status=OrderStatus.PAID)

        with pytest.raises(InvalidTransitionError) as exc_info:
            await customer_service.cancel_order(CUSTOMER_ID, order["id"])

        assert exc_info.value.message == "Can only cancel pending orders"
        assert order_repository.orders[order["id"]]["status"] == OrderStatus.PAID

    @pytest.mark.asyncio
    async def test_cannot_cancel_someone_elses_order(self, customer_service, order_repository) -> None:
        """Test that cancelling another customer's order is not found."""
        order = order_repository.insert(customer_id=OTHER_CUSTOMER_ID)

        with pytest.raises(OrderNotFoundError):
            await customer_service.cancel_order(CUSTOMER_ID, order["id"])

        assert order_repository.orders[order["id"]]["status"] == OrderStatus.PENDING
