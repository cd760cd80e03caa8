"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from assetsync.server.models import SyncJob, Tenant
from assetsync.sync.types import RetryResult

# === Tenant schemas ===


class TenantCreateRequest(BaseModel):
    """Request body for tenant creation."""

    name: str
    dam_base_url: str | None = None
    dam_token: str | None = None
    store_base_url: str | None = None
    store_token: str | None = None
    sync_tags: str | None = None
    file_folder_template: str | None = None
    filename_prefix: str | None = None
    filename_suffix: str | None = None
    alt_text_prefix: str | None = None


class TenantResponse(BaseModel):
    """Tenant data in responses. Credentials are never returned."""

    id: str
    name: str
    sync_tags: list[str]
    dam_configured: bool
    store_configured: bool
    file_folder_template: str | None
    filename_prefix: str | None
    filename_suffix: str | None
    alt_text_prefix: str | None
    created_at: str


# === Job schemas ===


class JobCreateRequest(BaseModel):
    """Request body for enqueuing a sync job."""

    tenant_id: str


class JobCreateResponse(BaseModel):
    """Response for job creation."""

    job_id: str
    status: str


class AssetErrorResponse(BaseModel):
    """One per-asset error of a job."""

    asset_id: str
    message: str


class JobResponse(BaseModel):
    """Sync job in responses."""

    id: str
    tenant_id: str
    status: str
    created_at: str
    started_at: str | None
    completed_at: str | None
    assets_processed: int
    assets_created: int
    assets_updated: int
    errors: list[AssetErrorResponse]
    fatal_error: str | None
    worker_id: str | None


class CancelResponse(BaseModel):
    """Response for a cancellation request."""

    job_id: str
    status: str


# === Retry schemas ===


class RetryRequest(BaseModel):
    """Request body for retrying failed assets.

    Either job_id, or tenant_id with asset_ids.
    """

    job_id: str | None = None
    tenant_id: str | None = None
    asset_ids: list[str] | None = None
    only_transient: bool = False


class CategorizedErrorResponse(BaseModel):
    """A classified failure."""

    asset_id: str
    message: str
    category: str
    retryable: bool


class RetryOutcomeResponse(BaseModel):
    """Outcome for one retried asset."""

    asset_id: str
    success: bool
    created: bool
    updated: bool
    skipped: bool
    error: str | None


class RetryResponse(BaseModel):
    """Result of a retry request."""

    processed: int
    successful: int
    failed: int
    skipped: int
    errors: list[CategorizedErrorResponse]
    results: list[RetryOutcomeResponse]


# === Health schema ===


class HealthResponse(BaseModel):
    """Health check response."""

    status: str


# === Converters ===


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def tenant_to_response(tenant: Tenant) -> TenantResponse:
    """Convert Tenant to response model."""
    return TenantResponse(
        id=tenant.id,
        name=tenant.name,
        sync_tags=tenant.tag_list,
        dam_configured=bool(tenant.dam_base_url and tenant.dam_token),
        store_configured=bool(tenant.store_base_url and tenant.store_token),
        file_folder_template=tenant.file_folder_template,
        filename_prefix=tenant.filename_prefix,
        filename_suffix=tenant.filename_suffix,
        alt_text_prefix=tenant.alt_text_prefix,
        created_at=tenant.created_at.isoformat(),
    )


def job_to_response(job: SyncJob) -> JobResponse:
    """Convert SyncJob to response model."""
    return JobResponse(
        id=job.id,
        tenant_id=job.tenant_id,
        status=job.status,
        created_at=job.created_at.isoformat(),
        started_at=_iso(job.started_at),
        completed_at=_iso(job.completed_at),
        assets_processed=job.assets_processed,
        assets_created=job.assets_created,
        assets_updated=job.assets_updated,
        errors=[
            AssetErrorResponse(asset_id=error.asset_id, message=error.message)
            for error in job.errors
        ],
        fatal_error=job.fatal_error,
        worker_id=job.worker_id,
    )


def retry_to_response(result: RetryResult) -> RetryResponse:
    """Convert RetryResult to response model."""
    return RetryResponse(
        processed=result.processed,
        successful=result.successful,
        failed=result.failed,
        skipped=result.skipped,
        errors=[
            CategorizedErrorResponse(
                asset_id=error.asset_id,
                message=error.message,
                category=error.category.value,
                retryable=error.retryable,
            )
            for error in result.errors
        ],
        results=[
            RetryOutcomeResponse(
                asset_id=outcome.asset_id,
                success=outcome.success,
                created=outcome.created,
                updated=outcome.updated,
                skipped=outcome.skipped,
                error=outcome.error,
            )
            for outcome in result.results
        ],
    )
