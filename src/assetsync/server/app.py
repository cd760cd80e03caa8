"""FastAPI application for the assetsync job API.

This module creates and configures the FastAPI application with:
- Tenant management
- Job creation, inspection, cancellation and retry

Usage:
    uvicorn assetsync.server.app:app_factory --factory --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from assetsync.core.config import Settings
from assetsync.core.log import setup_logging
from assetsync.server.api.router import router as api_router
from assetsync.server.database import Database
from assetsync.sync.context import ClientFactory, ContextFactory
from assetsync.sync.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


def create_app(db: Database, context_factory: ContextFactory | None = None) -> FastAPI:
    """Create FastAPI application with a custom database and client factory.

    This is primarily used for testing with isolated databases.

    Args:
        db: Database instance.
        context_factory: Builds DAM/store clients for retry requests. Retry
            answers 503 without one.

    Returns:
        Configured FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler for startup/shutdown."""
        logger.info("=" * 60)
        logger.info("AssetSync API Starting")
        logger.info("=" * 60)
        logger.info("  Database: %s", db.path)
        logger.info("  Retry:    %s", "enabled" if context_factory else "disabled")
        logger.info("=" * 60)

        yield

        logger.info("AssetSync API shutting down")

    application = FastAPI(
        title="AssetSync",
        description="DAM to content store synchronization jobs",
        version="0.1.0",
        lifespan=lifespan,
    )

    application.state.db = db
    application.state.context_factory = context_factory

    application.include_router(api_router)

    return application


def app_factory() -> FastAPI:
    """Factory function for uvicorn --factory mode."""
    settings = Settings.from_env()
    setup_logging(settings.log_path)
    limiter = RateLimiter.from_config(settings.rate_limit)
    return create_app(
        db=Database(settings.db_path),
        context_factory=ClientFactory(limiter, timeout=settings.http_timeout),
    )
