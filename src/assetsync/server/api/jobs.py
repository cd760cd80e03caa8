"""Sync job API routes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from assetsync.core.types import JobStatus
from assetsync.server.api.deps import get_context_factory, get_db
from assetsync.server.database import Database
from assetsync.server.schemas import (
    CancelResponse,
    JobCreateRequest,
    JobCreateResponse,
    JobResponse,
    RetryRequest,
    RetryResponse,
    job_to_response,
    retry_to_response,
)
from assetsync.sync import jobs as job_ops
from assetsync.sync.context import ContextFactory
from assetsync.sync.types import (
    ConfigurationError,
    JobNotFoundError,
    JobStateError,
    TenantNotFoundError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/jobs", tags=["jobs"])


@router.post("", response_model=JobCreateResponse, status_code=status.HTTP_201_CREATED)
def create_job(
    request: JobCreateRequest,
    db: Database = Depends(get_db),
) -> JobCreateResponse:
    """Enqueue a sync job; a worker picks it up."""
    try:
        job_id = job_ops.create_pending_job(db, request.tenant_id)
    except TenantNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return JobCreateResponse(job_id=job_id, status=JobStatus.PENDING.value)


@router.get("", response_model=list[JobResponse])
def list_jobs(
    tenant_id: str | None = None,
    limit: int = Query(default=50, ge=1, le=500),
    db: Database = Depends(get_db),
) -> list[JobResponse]:
    """List jobs, newest first."""
    return [job_to_response(job) for job in db.list_jobs(tenant_id=tenant_id, limit=limit)]


@router.post("/retry", response_model=RetryResponse)
def retry_assets(
    request: RetryRequest,
    db: Database = Depends(get_db),
    context_factory: ContextFactory = Depends(get_context_factory),
) -> RetryResponse:
    """Retry failed assets of a job, or specific assets of a tenant."""
    if not request.job_id and not request.asset_ids:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Either job_id or asset_ids must be provided",
        )

    tenant_id = request.tenant_id
    if request.job_id:
        job = db.get_job(request.job_id)
        if job is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Sync job {request.job_id} not found",
            )
        tenant_id = job.tenant_id
    if not tenant_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="tenant_id is required when retrying by asset_ids",
        )

    tenant = db.get_tenant(tenant_id)
    if tenant is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tenant {tenant_id} not found",
        )

    try:
        ctx = context_factory(db, tenant)
    except ConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    try:
        result = job_ops.retry(
            ctx,
            job_id=request.job_id,
            asset_ids=request.asset_ids,
            only_transient=request.only_transient,
        )
    except JobNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    finally:
        ctx.close()

    return retry_to_response(result)


@router.get("/{job_id}", response_model=JobResponse)
def get_job(job_id: str, db: Database = Depends(get_db)) -> JobResponse:
    """Get a job with its counts and errors."""
    job = db.get_job(job_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Sync job {job_id} not found",
        )
    return job_to_response(job)


@router.post("/{job_id}/cancel", response_model=CancelResponse)
def cancel_job(job_id: str, db: Database = Depends(get_db)) -> CancelResponse:
    """Cancel a pending or running job."""
    try:
        job_ops.request_cancellation(db, job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except JobStateError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return CancelResponse(job_id=job_id, status=JobStatus.CANCELLED.value)
