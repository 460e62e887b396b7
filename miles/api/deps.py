"""FastAPI dependency injection functions."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from miles.api.middleware.auth import AuthError, AuthErrorCode, decode_jwt
from miles.api.middleware.error_handler import NotFoundError
from miles.models.product import Store
from miles.schemas.auth import UserContext
from miles.services.catalog_service import CatalogService
from miles.services.customer_order_service import CustomerOrderService
from miles.services.order_admin_service import OrderAdminService
from miles.services.order_factory import OrderFactory
from miles.services.payment_service import PaymentService


async def get_current_user(
    authorization: Annotated[str, Header(description="Bearer token")] = "",
) -> UserContext:
    """Extract and validate the current user from the Authorization header.

    Args:
        authorization: The Authorization header value (Bearer token).

    Returns:
        UserContext: The authenticated user's context.

    Raises:
        HTTPException: 401 if token is missing, invalid, or expired.
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format. Expected: Bearer <token>",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return decode_jwt(parts[1]).to_user_context()
    except AuthError as e:
        detail = "Token has expired" if e.code == AuthErrorCode.TOKEN_EXPIRED else e.message
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


async def get_optional_user(
    authorization: Annotated[str | None, Header()] = None,
) -> UserContext | None:
    """Extract the current user if an Authorization header is present.

    Guest checkout sends no header and gets None. A header that is present
    but invalid is still rejected with 401.
    """
    if not authorization:
        return None
    return await get_current_user(authorization)


CurrentUser = Annotated[UserContext, Depends(get_current_user)]
OptionalUser = Annotated[UserContext | None, Depends(get_optional_user)]


# Service providers, overridable in tests via app.dependency_overrides


def get_catalog_service() -> CatalogService:
    return CatalogService()


def get_order_factory() -> OrderFactory:
    return OrderFactory()


def get_order_admin_service() -> OrderAdminService:
    return OrderAdminService()


def get_customer_order_service() -> CustomerOrderService:
    return CustomerOrderService()


def get_payment_service() -> PaymentService:
    return PaymentService()


async def get_owner_store(
    user: CurrentUser,
    catalog: Annotated[CatalogService, Depends(get_catalog_service)],
) -> Store:
    """Resolve the store owned by the authenticated user.

    Raises:
        NotFoundError: 404 if the user owns no store.
    """
    store = await catalog.get_store_for_owner(user.user_id)
    if store is None:
        raise NotFoundError("Store not found")
    return store


StoreOwner = Annotated[Store, Depends(get_owner_store)]
OrderFactoryDep = Annotated[OrderFactory, Depends(get_order_factory)]
OrderAdminDep = Annotated[OrderAdminService, Depends(get_order_admin_service)]
CustomerOrdersDep = Annotated[CustomerOrderService, Depends(get_customer_order_service)]
PaymentServiceDep = Annotated[PaymentService, Depends(get_payment_service)]
