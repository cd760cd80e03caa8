"""Job operations exposed to the HTTP API and the CLI."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from assetsync.core.types import SyncOrigin
from assetsync.sync.retry import retry_failed_assets
from assetsync.sync.types import (
    JobNotFoundError,
    JobStateError,
    RetryResult,
    TenantNotFoundError,
)

if TYPE_CHECKING:
    from assetsync.server.database import Database
    from assetsync.sync.context import SyncContext

logger = logging.getLogger(__name__)


def create_pending_job(db: Database, tenant_id: str) -> str:
    """Enqueue a sync job for a tenant.

    Returns:
        The new job id.

    Raises:
        TenantNotFoundError: If the tenant does not exist.
    """
    if db.get_tenant(tenant_id) is None:
        raise TenantNotFoundError(tenant_id)
    job = db.create_job(tenant_id)
    logger.info("Queued sync job %s for tenant %s", job.id, tenant_id)
    return job.id


def request_cancellation(db: Database, job_id: str) -> None:
    """Cancel a pending or running job.

    A running job stops at its next asset boundary.

    Raises:
        JobNotFoundError: If the job does not exist.
        JobStateError: If the job already finished.
    """
    if db.cancel_job(job_id):
        logger.info("Cancellation requested for job %s", job_id)
        return

    job = db.get_job(job_id)
    if job is None:
        raise JobNotFoundError(job_id)
    raise JobStateError(f"Job {job_id} is already {job.status} and cannot be cancelled")


def retry(
    ctx: SyncContext,
    job_id: str | None = None,
    asset_ids: Sequence[str] | None = None,
    only_transient: bool = False,
) -> RetryResult:
    """Retry failed assets of a job, or specific assets.

    Raises:
        ValueError: If neither job_id nor asset_ids is given.
        JobNotFoundError: If job_id does not exist for this tenant.
    """
    if not job_id and not asset_ids:
        raise ValueError("Either job_id or asset_ids must be provided")

    if job_id:
        job = ctx.db.get_job(job_id)
        if job is None or job.tenant_id != ctx.tenant.id:
            raise JobNotFoundError(job_id)

    return retry_failed_assets(
        ctx,
        job_id=job_id,
        asset_ids=asset_ids,
        only_transient=only_transient,
        origin=SyncOrigin.MANUAL,
    )
