"""Full tag sync for one tenant.

Flow:
    list assets per sync tag -> de-duplicated candidates
    -> single-asset sync each (cancellation checked before every asset)
    -> automatic retry of transient failures
    -> persist completed / cancelled / failed
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from assetsync.core.config import WorkerConfig
from assetsync.core.types import AssetError, JobStatus, SyncOrigin
from assetsync.sync.errors import classify_batch
from assetsync.sync.retry import retry_failed_assets
from assetsync.sync.single_asset import sync_single_asset
from assetsync.sync.types import SyncResult

if TYPE_CHECKING:
    from assetsync.clients.types import DamAssetSummary
    from assetsync.sync.context import SyncContext

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """Runs one full sync for the tenant of a SyncContext.

    Usage:
        orchestrator = SyncOrchestrator(ctx)
        result = orchestrator.run(job_id=job.id)

    With a job id, progress and the final state are written to that job and
    an external cancellation of the job stops the run at the next asset
    boundary. Without one, the run is ad hoc and nothing is persisted
    except the synced-asset mappings.
    """

    def __init__(
        self,
        ctx: SyncContext,
        config: WorkerConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            ctx: Store, tenant and clients.
            config: Auto-retry settings (defaults to WorkerConfig()).
            sleep: Sleep function used for the retry backoff.
        """
        self._ctx = ctx
        self._config = config or WorkerConfig()
        self._sleep = sleep

    def run(
        self,
        job_id: str | None = None,
        force: bool = False,
        origin: SyncOrigin = SyncOrigin.AUTO,
    ) -> SyncResult:
        """Sync every in-scope asset.

        Args:
            job_id: Job to report to and to watch for cancellation.
            force: Re-import assets even if their version is current.
            origin: Recorded on mapping rows.

        Returns:
            Aggregated counts and residual errors.

        Raises:
            Exception: Whatever aborted the run (e.g. a listing failure),
                after the job was marked failed.
        """
        try:
            return self._run(job_id, force, origin)
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error("Sync job %s failed: %s", job_id or "(ad hoc)", message)
            if job_id:
                try:
                    self._ctx.db.fail_job(job_id, message)
                except Exception as persist_error:
                    logger.error("Could not mark job %s failed: %s", job_id, persist_error)
            raise

    def _run(self, job_id: str | None, force: bool, origin: SyncOrigin) -> SyncResult:
        ctx = self._ctx
        result = SyncResult()
        hits_at_start = ctx.rate_limiter.rate_limit_hits if ctx.rate_limiter else 0
        sync_tags = ctx.tenant.tag_list

        if not sync_tags:
            logger.info("Tenant %s has no sync tags, nothing to do", ctx.tenant.name)
            self._complete(job_id, result)
            return result

        candidates = self._discover(sync_tags)
        logger.info(
            "Job %s: %d candidate asset(s) for tags %s",
            job_id or "(ad hoc)",
            len(candidates),
            ", ".join(sync_tags),
        )

        for asset_id in candidates:
            if self._is_cancelled(job_id):
                return self._cancel(job_id, result)

            outcome = sync_single_asset(ctx, asset_id, origin=origin, force=force, job_id=job_id)
            result.processed += 1
            if outcome.created:
                result.created += 1
            elif outcome.updated:
                result.updated += 1
            elif outcome.error is not None:
                result.errors.append(AssetError(asset_id, outcome.error))

            if job_id:
                ctx.db.record_progress(job_id, result.processed, result.created, result.updated)

        if self._is_cancelled(job_id):
            return self._cancel(job_id, result)

        if result.errors and self._config.auto_retry:
            self._retry_transient(result, origin, force)

        if not self._complete(job_id, result):
            if self._is_cancelled(job_id):
                return self._cancel(job_id, result)
            logger.warning(
                "Job %s was already finished by another writer, results not stored",
                job_id,
            )
            return result

        hits = (ctx.rate_limiter.rate_limit_hits if ctx.rate_limiter else 0) - hits_at_start
        logger.info(
            "Job %s completed: %d processed, %d created, %d updated, %d error(s), "
            "%d rate limit hit(s)",
            job_id or "(ad hoc)",
            result.processed,
            result.created,
            result.updated,
            len(result.errors),
            hits,
        )
        return result

    def _discover(self, sync_tags: list[str]) -> dict[str, DamAssetSummary]:
        """Union of the per-tag listings, first occurrence wins."""
        candidates: dict[str, DamAssetSummary] = {}
        for tag in sync_tags:
            for summary in self._ctx.dam.list_assets_by_tag(tag):
                if summary.id in candidates:
                    continue
                if any(asset_tag in sync_tags for asset_tag in summary.tags):
                    candidates[summary.id] = summary
        return candidates

    def _is_cancelled(self, job_id: str | None) -> bool:
        if not job_id:
            return False
        return self._ctx.db.get_job_status(job_id) == JobStatus.CANCELLED

    def _cancel(self, job_id: str | None, result: SyncResult) -> SyncResult:
        """Keep the cancelled status and store the partial counts."""
        result.cancelled = True
        logger.warning(
            "Job %s cancelled after %d asset(s) (%d created, %d updated)",
            job_id,
            result.processed,
            result.created,
            result.updated,
        )
        if job_id:
            self._ctx.db.record_cancelled(
                job_id, result.processed, result.created, result.updated, result.errors
            )
        return result

    def _complete(self, job_id: str | None, result: SyncResult) -> bool:
        """Persist completed. False if the job was cancelled meanwhile."""
        if not job_id:
            return True
        return self._ctx.db.complete_job(
            job_id, result.processed, result.created, result.updated, result.errors
        )

    def _retry_transient(self, result: SyncResult, origin: SyncOrigin, force: bool) -> None:
        """Second pass over transient failures, merged into ``result``.

        On a forced run a skipped retry did not re-import anything, so the
        original error stays.
        """
        breakdown = classify_batch(result.errors)
        if not breakdown.transient:
            logger.info(
                "%d error(s), none transient: %d permanent, %d unknown",
                breakdown.total,
                len(breakdown.permanent),
                len(breakdown.unknown),
            )
            return

        logger.info(
            "Retrying %d transient failure(s) in %.1fs",
            breakdown.retryable,
            self._config.auto_retry_delay,
        )
        self._sleep(self._config.auto_retry_delay)

        retry = retry_failed_assets(
            self._ctx,
            errors=[error.to_asset_error() for error in breakdown.transient],
            only_transient=True,
            origin=origin,
            force=force,
        )
        result.retry = retry

        resolved: set[str] = set()
        latest: dict[str, str] = {}
        for outcome in retry.results:
            if outcome.error is None and not (force and outcome.skipped):
                resolved.add(outcome.asset_id)
                if outcome.created:
                    result.created += 1
                elif outcome.updated:
                    result.updated += 1
            elif outcome.error is not None:
                latest[outcome.asset_id] = outcome.error

        result.errors = [
            AssetError(error.asset_id, latest.get(error.asset_id, error.message))
            for error in result.errors
            if error.asset_id not in resolved
        ]
        logger.info(
            "Automatic retry: %d recovered, %d still failing",
            len(resolved),
            retry.failed,
        )
