"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from miles.api.middleware.error_handler import APIError, api_error_handler, error_handler_middleware
from miles.api.middleware.latency_logging import latency_logging_middleware
from miles.api.middleware.request_size import request_size_limit_middleware
from miles.api.routes import checkout, customer_orders, health, orders, payments, webhooks
from miles.core.config import get_settings
from miles.core.stripe import configure_stripe

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Args:
        app: FastAPI application instance.

    Yields:
        None: Control back to the application.
    """
    settings = get_settings()
    logger.info("Starting %s in %s mode", settings.app_name, settings.app_env)

    configure_stripe()
    logger.info("Stripe SDK configured (test_mode=%s)", settings.is_stripe_test_mode)

    if not settings.resend_api_key:
        logger.warning("Resend API key not set, customer emails will not be delivered")

    yield
    logger.info("Shutting down %s", settings.app_name)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Miles Orders API",
        description="Order lifecycle and payment settlement for Miles stores",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_exception_handler(APIError, api_error_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Starlette wraps in reverse order: the last middleware added runs first
    app.add_middleware(BaseHTTPMiddleware, dispatch=request_size_limit_middleware)
    app.add_middleware(BaseHTTPMiddleware, dispatch=latency_logging_middleware)
    app.add_middleware(BaseHTTPMiddleware, dispatch=error_handler_middleware)

    app.include_router(health.router)

    api_v1_router = APIRouter(prefix="/api/v1")
    api_v1_router.include_router(checkout.router)
    api_v1_router.include_router(customer_orders.router)
    api_v1_router.include_router(customer_orders.public_router)
    api_v1_router.include_router(orders.router)
    api_v1_router.include_router(payments.router)
    api_v1_router.include_router(webhooks.router)
    app.include_router(api_v1_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "miles.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
