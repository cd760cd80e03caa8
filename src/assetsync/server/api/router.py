"""Main API router that includes all sub-routers."""

from __future__ import annotations

from fastapi import APIRouter

from assetsync.server.api import health, jobs, tenants

router = APIRouter()

# Include all API routers
router.include_router(health.router)
router.include_router(tenants.router)
router.include_router(jobs.router)
