"""Global error handling middleware for consistent error responses."""

import logging
import traceback
from typing import Any, Callable, Iterable

from fastapi import HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from miles.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base exception for API errors.

    Use this class to raise application-specific errors that should
    be returned to the client with a specific status code and message.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_type: str = "api_error",
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        """Initialize API error.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code to return.
            error_type: Error category/type for client handling.
            details: Optional additional error details.
        """
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        self.details = details
        super().__init__(message)


class NotFoundError(APIError):
    """Resource not found error."""

    def __init__(self, message: str = "Resource not found", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_type="not_found",
            details=details,
        )


class ValidationError(APIError):
    """Request validation error."""

    def __init__(self, message: str = "Validation error", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_type="validation_error",
            details=details,
        )


class ConflictError(APIError):
    """The resource changed underneath the request."""

    def __init__(self, message: str = "Resource was modified concurrently", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_type="conflict",
            details=details,
        )


# Order domain errors


class OrderNotFoundError(NotFoundError):
    """Order does not exist or is not visible to the caller.

    Cross-tenant lookups raise this too so that existence is not leaked.
    """

    def __init__(self, order_id: int | None = None) -> None:
        super().__init__(message="Order not found")
        self.order_id = order_id


class ProductUnavailableError(NotFoundError):
    """Product is missing, inactive, or belongs to another store."""

    def __init__(self, product_id: int) -> None:
        super().__init__(
            message="Product not found or inactive",
            details=[{"loc": ["items", "product_id"], "msg": str(product_id), "type": "product_unavailable"}],
        )
        self.error_type = "product_unavailable"
        self.product_id = product_id


class InsufficientStockError(APIError):
    """Requested quantity exceeds current stock."""

    def __init__(self, product_name: str, available: int, requested: int) -> None:
        super().__init__(
            message=f"Insufficient stock for {product_name}: {available} available, {requested} requested",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_type="insufficient_stock",
            details=[
                {"loc": ["product"], "msg": product_name, "type": "product"},
                {"loc": ["available"], "msg": str(available), "type": "available"},
                {"loc": ["requested"], "msg": str(requested), "type": "requested"},
            ],
        )
        self.product_name = product_name
        self.available = available
        self.requested = requested


class InvalidTransitionError(APIError):
    """Status change is not permitted from the order's current status."""

    def __init__(
        self,
        current_status: str,
        target_status: str,
        allowed: Iterable[str] | None,
        message: str | None = None,
    ) -> None:
        self.current_status = str(current_status)
        self.target_status = str(target_status)
        self.allowed = sorted(str(s) for s in allowed) if allowed is not None else None
        details = [{"loc": ["current_status"], "msg": self.current_status, "type": "current_status"}]
        if self.allowed is not None:
            details.append({"loc": ["allowed_transitions"], "msg": ",".join(self.allowed), "type": "allowed_transitions"})
        if message is None:
            if self.allowed:
                message = (
                    f"Cannot change order status from {self.current_status} to {self.target_status}. "
                    f"Allowed: {', '.join(self.allowed)}"
                )
            else:
                message = f"Order is {self.current_status} and can no longer change status"
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_type="invalid_transition",
            details=details,
        )


class PaymentNotCompletedError(APIError):
    """The gateway reports the payment as not (yet) successful."""

    def __init__(self, payment_status: str) -> None:
        super().__init__(
            message="Payment not completed",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_type="payment_not_completed",
            details=[{"loc": ["payment_status"], "msg": payment_status, "type": "payment_status"}],
        )
        self.payment_status = payment_status


class SignatureInvalidError(APIError):
    """Webhook authenticity check failed."""

    def __init__(self, message: str = "Invalid signature") -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_type="signature_invalid",
        )


class GatewayUnavailableError(APIError):
    """Payment gateway could not be reached or rejected the call; retry later."""

    def __init__(self, message: str = "Payment gateway unavailable, please retry") -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_type="gateway_unavailable",
        )


def create_error_response(
    error_type: str,
    message: str,
    status_code: int,
    details: list[dict[str, Any]] | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    """Create a standardized JSON error response.

    Args:
        error_type: Error category for client handling.
        message: Human-readable error description.
        status_code: HTTP status code.
        details: Optional error details.
        request_id: Optional request ID for tracing.

    Returns:
        JSONResponse: Formatted error response.
    """
    error_response = ErrorResponse.from_exception(
        error_type=error_type,
        message=message,
        details=details,
        request_id=request_id,
    )
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json", exclude_none=True),
    )


async def error_handler_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    """Middleware to catch and format all exceptions.

    Ensures consistent error response format across the application.
    Logs full stack traces for debugging while returning safe messages to clients.

    Args:
        request: The incoming request.
        call_next: Next middleware or route handler.

    Returns:
        Response: Either the successful response or formatted error response.
    """
    request_id = request.headers.get("X-Request-ID")

    try:
        response = await call_next(request)
        return response

    except APIError as e:
        logger.warning(
            "API error: %s - %s",
            e.error_type,
            e.message,
            extra={"request_id": request_id, "status_code": e.status_code},
        )
        return create_error_response(
            error_type=e.error_type,
            message=e.message,
            status_code=e.status_code,
            details=e.details,
            request_id=request_id,
        )

    except HTTPException as e:
        logger.warning(
            "HTTP exception: %s - %s",
            e.status_code,
            e.detail,
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type="http_error",
            message=str(e.detail),
            status_code=e.status_code,
            request_id=request_id,
        )

    except Exception as e:
        # Unexpected exceptions - log full stack trace
        logger.error(
            "Unhandled exception: %s\n%s",
            str(e),
            traceback.format_exc(),
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type="internal_error",
            message="An unexpected error occurred",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_id=request_id,
        )


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Exception handler registered on the app for APIError subclasses.

    Errors raised inside route handlers are rendered here before they reach
    the middleware stack, so the response shape is identical either way.
    """
    logger.warning(
        "API error: %s - %s",
        exc.error_type,
        exc.message,
        extra={"status_code": exc.status_code, "path": request.url.path},
    )
    return create_error_response(
        error_type=exc.error_type,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        request_id=request.headers.get("X-Request-ID"),
    )
