"""Pytest configuration and fixtures."""

import os
from collections.abc import Generator
from typing import Any
from unittest.mock import MagicMock, patch
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ.setdefault("SUPABASE_SIGNING_KEY_JWK", "test-signing-key-jwk")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_stripe_secret_key")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_webhook_secret")
os.environ.setdefault("STRIPE_PUBLISHABLE_KEY", "pk_test_stripe_publishable_key")
os.environ.setdefault("RESEND_API_KEY", "re_test_key")

from miles.services.notification_service import OrderEventDispatcher  # noqa: E402
from tests.fakes import (  # noqa: E402
    OTHER_OWNER_ID,
    OWNER_ID,
    FakeCatalog,
    FakeOrderRepository,
    RecordingNotifier,
)


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Provide test settings with cleared cache.

    Yields:
        Settings: Test configuration settings.
    """
    from miles.core.config import get_settings

    get_settings.cache_clear()
    settings = get_settings()
    yield settings
    get_settings.cache_clear()


@pytest.fixture
def catalog() -> FakeCatalog:
    """Two stores; store 1 sells RM50 and RM20 products plus an inactive one."""
    catalog = FakeCatalog()
    catalog.add_store(1, OWNER_ID, "Kedai Kopi")
    catalog.add_store(2, OTHER_OWNER_ID, "Kedai Lain")
    catalog.add_product(1, 1, "Kopi Arabica 1kg", "50.00", stock=10)
    catalog.add_product(2, 1, "Mug Seramik", "20.00", stock=5)
    catalog.add_product(3, 1, "Kopi Lama", "15.00", stock=3, is_active=False)
    catalog.add_product(4, 2, "Teh Tarik Pack", "12.50", stock=8)
    return catalog


@pytest.fixture
def order_repository(catalog: FakeCatalog) -> FakeOrderRepository:
    """Provide an empty in-memory order store."""
    return FakeOrderRepository(catalog)


@pytest.fixture
def notifier() -> RecordingNotifier:
    """Provide a notifier that records sent emails."""
    return RecordingNotifier()


@pytest.fixture
def dispatcher(notifier: RecordingNotifier) -> OrderEventDispatcher:
    """Provide an event dispatcher wired to the recording notifier."""
    return OrderEventDispatcher(notifier=notifier)


@pytest.fixture
def settlement_service(order_repository: FakeOrderRepository, dispatcher: OrderEventDispatcher):
    """Provide a SettlementService over the in-memory store."""
    from miles.services.settlement_service import SettlementService

    return SettlementService(repository=order_repository, dispatcher=dispatcher)


@pytest.fixture
def order_factory(catalog: FakeCatalog, order_repository: FakeOrderRepository, dispatcher: OrderEventDispatcher):
    """Provide an OrderFactory over the in-memory catalog and store."""
    from miles.services.order_factory import OrderFactory

    return OrderFactory(catalog=catalog, repository=order_repository, dispatcher=dispatcher)


@pytest.fixture
def admin_service(order_repository: FakeOrderRepository, settlement_service, dispatcher: OrderEventDispatcher):
    """Provide an OrderAdminService over the in-memory store."""
    from miles.services.order_admin_service import OrderAdminService

    return OrderAdminService(repository=order_repository, settlement=settlement_service, dispatcher=dispatcher)


@pytest.fixture
def customer_service(order_repository: FakeOrderRepository, dispatcher: OrderEventDispatcher):
    """Provide a CustomerOrderService over the in-memory store."""
    from miles.services.customer_order_service import CustomerOrderService

    return CustomerOrderService(repository=order_repository, dispatcher=dispatcher)


@pytest.fixture
def mock_stripe() -> MagicMock:
    """Create a mock Stripe module keeping the real error classes."""
    import stripe

    mock = MagicMock()
    mock.StripeError = stripe.StripeError
    mock.SignatureVerificationError = stripe.SignatureVerificationError
    mock.InvalidRequestError = stripe.InvalidRequestError
    return mock


@pytest.fixture
def payment_service(mock_stripe: MagicMock, order_repository: FakeOrderRepository, settlement_service, catalog: FakeCatalog):
    """Provide a PaymentService with Stripe mocked out."""
    from miles.services.payment_service import PaymentService

    with patch("miles.services.payment_service.get_stripe", return_value=mock_stripe):
        return PaymentService(repository=order_repository, settlement=settlement_service, catalog=catalog)


@pytest.fixture
def mock_supabase_client() -> Generator[MagicMock, None, None]:
    """Provide a mocked Supabase client.

    Yields:
        MagicMock: Mocked Supabase client for testing.
    """
    mock_client = MagicMock()

    mock_response = MagicMock()
    mock_response.data = []
    mock_client.table.return_value.select.return_value.limit.return_value.execute.return_value = (
        mock_response
    )

    with patch("miles.core.supabase.get_supabase_client", return_value=mock_client):
        yield mock_client


@pytest.fixture
def client(mock_supabase_client: MagicMock) -> Generator[TestClient, None, None]:
    """Provide a test client for the FastAPI application.

    Dependency overrides set by a test are cleared afterwards.

    Yields:
        TestClient: FastAPI test client.
    """
    from miles.main import app

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def api_client(
    client: TestClient,
    catalog: FakeCatalog,
    order_factory,
    admin_service,
    customer_service,
    payment_service,
) -> TestClient:
    """Provide a test client whose services run on the in-memory fakes."""
    from miles.api import deps

    overrides = client.app.dependency_overrides
    overrides[deps.get_catalog_service] = lambda: catalog
    overrides[deps.get_order_factory] = lambda: order_factory
    overrides[deps.get_order_admin_service] = lambda: admin_service
    overrides[deps.get_customer_order_service] = lambda: customer_service
    overrides[deps.get_payment_service] = lambda: payment_service
    return client


@pytest.fixture
def login(api_client: TestClient):
    """Return a helper that authenticates every request as the given user."""
    from miles.api import deps
    from miles.schemas.auth import UserContext

    def _login(user_id: UUID) -> None:
        user = UserContext(user_id=user_id, email="user@example.com", role="authenticated")
        api_client.app.dependency_overrides[deps.get_current_user] = lambda: user
        api_client.app.dependency_overrides[deps.get_optional_user] = lambda: user

    return _login
