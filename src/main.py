"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from src.api.middleware.error_handler import error_handler_middleware
from src.api.middleware.latency_logging import latency_logging_middleware
from src.api.middleware.request_size import request_size_limit_middleware
from src.api.routes import (
    admin,
    admin_catalog,
    backoffice,
    cart,
    catalog,
    checkout,
    health,
    orders,
    payments,
    webhooks,
)
from src.core.config import get_settings
from src.core.database import dispose_database, get_session_factory, init_database
from src.core.stripe import configure_stripe
from src.services.backoffice_service import BackofficeService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def seed_superadmin() -> None:
    """Ensure the configured superadmin exists with its role."""
    db = get_session_factory()()
    try:
        profile_id = await BackofficeService(db).ensure_seeded_superadmin()
    finally:
        db.close()
    if profile_id is not None:
        logger.info("Superadmin profile %s ready", profile_id)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events.

    Args:
        app: FastAPI application instance.

    Yields:
        None: Control back to the application.
    """
    # Startup
    settings = get_settings()
    logger.info("Starting %s in %s mode", settings.app_name, settings.app_env)

    init_database()
    logger.info("Database initialized")

    # Configure Stripe SDK
    configure_stripe()
    logger.info("Stripe SDK configured")

    if settings.superadmin_email:
        await seed_superadmin()

    yield
    # Shutdown
    dispose_database()
    logger.info("Shutting down %s", settings.app_name)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="AT Thrill API",
        description="Storefront backend: pricing, orders, payments and backoffice",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add error handler middleware (outermost - catches all errors)
    app.add_middleware(BaseHTTPMiddleware, dispatch=error_handler_middleware)

    # Add latency logging middleware (tracks request timing)
    app.add_middleware(BaseHTTPMiddleware, dispatch=latency_logging_middleware)

    # Add request size limit middleware (rejects oversized requests early)
    app.add_middleware(BaseHTTPMiddleware, dispatch=request_size_limit_middleware)

    # Mount health routes at root level (no prefix)
    app.include_router(health.router)

    # Create API v1 router for versioned endpoints
    api_v1_router = APIRouter(prefix="/api/v1")

    # Storefront routes
    api_v1_router.include_router(catalog.router)
    api_v1_router.include_router(cart.router)
    api_v1_router.include_router(checkout.router)
    api_v1_router.include_router(payments.router)
    api_v1_router.include_router(orders.router)

    # Payment provider webhooks
    api_v1_router.include_router(webhooks.router)

    # Backoffice routes
    api_v1_router.include_router(backoffice.router)
    api_v1_router.include_router(admin.router)
    api_v1_router.include_router(admin_catalog.router)

    app.include_router(api_v1_router)

    return app


# Create application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
