"""
FastAPI Application Factory

Creates and configures the inventory sync API.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from stocksync.config import get_settings
from stocksync.config.logging import configure_logging
from stocksync.database.connection import close_database, init_database
from stocksync.serving.api.middleware import RateLimitMiddleware, RequestLoggingMiddleware
from stocksync.serving.api.routes import (
    analytics_router,
    articles_router,
    buying_orders_router,
    health_router,
    orders_router,
    products_router,
    sync_router,
)
from stocksync.serving.cache import close_redis, init_redis

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup fails when required FTP settings are missing or the database is
    unreachable; Redis is optional.
    """
    settings = get_settings()
    configure_logging()

    missing = settings.missing_required()
    if missing:
        logger.error("Missing required environment variables", variables=missing)
        raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")

    logger.info("Starting inventory sync API", environment=settings.app_env, version=settings.version)

    await init_database()
    await init_redis()

    yield

    logger.info("Shutting down...")
    await close_redis()
    await close_database()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    settings = get_settings()

    app = FastAPI(
        title="Inventory Sync API",
        description="Supplier inventory feed sync, stock lists and sales analytics",
        version=settings.version,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.security.rate_limit_requests,
        window_seconds=settings.security.rate_limit_window_seconds,
    )

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(sync_router, prefix="/api/v1/sync", tags=["Sync"])
    app.include_router(products_router, prefix="/api/v1/products", tags=["Products"])
    app.include_router(articles_router, prefix="/api/v1/articles", tags=["Articles"])
    app.include_router(orders_router, prefix="/api/v1/orders", tags=["Orders"])
    app.include_router(buying_orders_router, prefix="/api/v1/buying-orders", tags=["Buying Orders"])
    app.include_router(analytics_router, prefix="/api/v1/analytics", tags=["Analytics"])

    @app.get("/", include_in_schema=False)
    async def root():
        return {"name": settings.app_name, "version": settings.version, "docs": app.docs_url}

    return app
