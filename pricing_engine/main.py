"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from pricing_engine.api.middleware.error_handler import error_handler_middleware
from pricing_engine.api.middleware.latency_logging import latency_logging_middleware
from pricing_engine.api.routes import analytics, carts, health, orders, pricing
from pricing_engine.core.config import get_settings
from pricing_engine.services.schedule_cache import init_schedule_cache, shutdown_schedule_cache

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Starts the schedule cache cleanup task and stops it on shutdown.

    Args:
        app: FastAPI application instance.

    Yields:
        None: Control back to the application.
    """
    settings = get_settings()
    logger.info("Starting %s in %s mode", settings.app_name, settings.app_env)
    logger.info(
        "Pricing: currency=%s strict_negative_prices=%s refund_include_shipping=%s",
        settings.default_currency,
        settings.strict_negative_prices,
        settings.refund_include_shipping,
    )

    await init_schedule_cache()
    logger.info("Schedule cache initialized")

    yield

    await shutdown_schedule_cache()
    logger.info("Schedule cache shutdown")
    logger.info("Shutting down %s", settings.app_name)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Pricing Engine API",
        description="Discount stacking, order totals and refund allocation",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Last added is outermost: latency logging wraps the error handler
    app.add_middleware(BaseHTTPMiddleware, dispatch=error_handler_middleware)
    app.add_middleware(BaseHTTPMiddleware, dispatch=latency_logging_middleware)

    # Mount health routes at root level (no prefix)
    app.include_router(health.router)

    api_v1_router = APIRouter(prefix="/api/v1")
    api_v1_router.include_router(pricing.router)
    api_v1_router.include_router(carts.router)
    api_v1_router.include_router(orders.router)
    api_v1_router.include_router(analytics.router)
    app.include_router(api_v1_router)

    return app


# Create application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "pricing_engine.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
