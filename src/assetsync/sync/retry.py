"""Re-run single-asset sync for previously failed assets.

The failures to replay come from one of:
- a stored job's error list (``job_id``)
- the tenant's recent job history (``asset_ids``)
- an explicit list (``errors``), used by the orchestrator's automatic pass
  before its errors are persisted
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from assetsync.core.types import AssetError, SyncOrigin
from assetsync.sync.errors import classify, classify_batch
from assetsync.sync.single_asset import sync_single_asset
from assetsync.sync.types import AssetRetryOutcome, RetryResult

if TYPE_CHECKING:
    from assetsync.sync.context import SyncContext

logger = logging.getLogger(__name__)

# How many terminal jobs to search for an asset's last error
RECENT_JOBS_LOOKBACK = 10
UNKNOWN_PREVIOUS_ERROR = "Previous error not found, retrying anyway"


def _errors_for_assets(ctx: SyncContext, asset_ids: Sequence[str]) -> list[AssetError]:
    """Most recent known error for each asset id, in the order given."""
    latest: dict[str, AssetError] = {}
    for error in ctx.db.recent_job_errors(ctx.tenant.id, limit=RECENT_JOBS_LOOKBACK):
        latest.setdefault(error.asset_id, error)

    failures: list[AssetError] = []
    seen: set[str] = set()
    for asset_id in asset_ids:
        if asset_id in seen:
            continue
        seen.add(asset_id)
        failures.append(latest.get(asset_id) or AssetError(asset_id, UNKNOWN_PREVIOUS_ERROR))
    return failures


def _collect_failures(
    ctx: SyncContext,
    job_id: str | None,
    asset_ids: Sequence[str] | None,
    errors: Sequence[AssetError] | None,
) -> list[AssetError]:
    if errors is not None:
        return list(errors)
    if job_id:
        job = ctx.db.get_job(job_id)
        if job is None:
            logger.warning("Retry requested for unknown job %s", job_id)
            return []
        return job.errors
    if asset_ids:
        return _errors_for_assets(ctx, asset_ids)
    return []


def retry_failed_assets(
    ctx: SyncContext,
    job_id: str | None = None,
    asset_ids: Sequence[str] | None = None,
    errors: Sequence[AssetError] | None = None,
    only_transient: bool = False,
    origin: SyncOrigin = SyncOrigin.AUTO,
    force: bool = False,
) -> RetryResult:
    """Retry failed assets.

    Args:
        ctx: Store, tenant and clients.
        job_id: Replay this job's stored errors.
        asset_ids: Replay these assets, looking up their last error.
        errors: Replay exactly these failures.
        only_transient: Retry only transient failures; the others are
            reported as skipped.
        origin: Recorded on mapping rows the retry writes.
        force: Re-import even when the stored version is current.

    Returns:
        Tallies and per-asset outcomes. Never raises; if the failures
        cannot be looked up the result is empty.
    """
    try:
        failures = _collect_failures(ctx, job_id, asset_ids, errors)
    except Exception as e:
        logger.error(
            "Could not load failures to retry for tenant %s: %s",
            ctx.tenant.name,
            str(e) or type(e).__name__,
        )
        return RetryResult()
    if not failures:
        return RetryResult()

    result = RetryResult()
    if only_transient:
        breakdown = classify_batch(failures)
        to_retry = [error.to_asset_error() for error in breakdown.transient]
        left_out = breakdown.permanent + breakdown.unknown
        result.skipped = len(left_out)
        result.errors.extend(left_out)
    else:
        to_retry = failures

    logger.info(
        "Retrying %d asset(s) for tenant %s (%d left out)",
        len(to_retry),
        ctx.tenant.name,
        result.skipped,
    )

    for failure in to_retry:
        result.processed += 1
        try:
            outcome = sync_single_asset(
                ctx, failure.asset_id, origin=origin, force=force, job_id=job_id
            )
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error("Retry of asset %s raised: %s", failure.asset_id, message)
            result.failed += 1
            result.errors.append(classify(message, failure.asset_id))
            result.results.append(
                AssetRetryOutcome(failure.asset_id, success=False, error=message)
            )
            continue

        if outcome.error is not None:
            result.failed += 1
            result.errors.append(classify(outcome.error, failure.asset_id))
        elif outcome.skipped:
            result.skipped += 1
        else:
            result.successful += 1

        result.results.append(
            AssetRetryOutcome(
                failure.asset_id,
                success=outcome.error is None and not outcome.skipped,
                created=outcome.created,
                updated=outcome.updated,
                skipped=outcome.skipped,
                error=outcome.error,
            )
        )

    logger.info(
        "Retry finished: %d successful, %d failed, %d skipped",
        result.successful,
        result.failed,
        result.skipped,
    )
    return result
