"""FastAPI dependencies for API routes."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from assetsync.server.database import Database
from assetsync.sync.context import ContextFactory


def get_db(request: Request) -> Database:
    """Get database from app state."""
    db: Database = request.app.state.db
    return db


def get_context_factory(request: Request) -> ContextFactory:
    """Get the client factory from app state."""
    factory: ContextFactory | None = request.app.state.context_factory
    if factory is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Sync clients not configured",
        )
    return factory
