"""Job worker: poll, claim, run, persist.

State machine driven here:
    pending -> running -> {completed | failed | cancelled}

A running job whose last progress is older than the staleness threshold
belongs to a crashed worker and is claimed again. The loop never dies on a
store or job error; it logs, sleeps the poll interval and polls again.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Callable
from datetime import timedelta
from typing import TYPE_CHECKING

from assetsync.core.config import WorkerConfig
from assetsync.core.types import JobStatus
from assetsync.sync.orchestrator import SyncOrchestrator

if TYPE_CHECKING:
    from assetsync.server.database import Database
    from assetsync.server.models import SyncJob
    from assetsync.sync.context import ContextFactory

logger = logging.getLogger(__name__)


class SyncWorker:
    """Polls the job store and runs one job at a time.

    Usage:
        worker = SyncWorker(db, ClientFactory(limiter))
        thread = threading.Thread(target=worker.run_forever)
        thread.start()
        ...
        worker.stop()
    """

    def __init__(
        self,
        db: Database,
        context_factory: ContextFactory,
        config: WorkerConfig | None = None,
        worker_id: str | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the worker.

        Args:
            db: Job store.
            context_factory: Builds clients for a job's tenant.
            config: Poll, staleness and auto-retry settings.
            worker_id: Identity written on claimed jobs (random by default).
            sleep: Sleep used for the orchestrator's retry backoff.
        """
        self._db = db
        self._context_factory = context_factory
        self._config = config or WorkerConfig()
        self._worker_id = worker_id or uuid.uuid4().hex
        self._sleep = sleep
        self._stop_event = threading.Event()

    @property
    def worker_id(self) -> str:
        """Identity of this worker."""
        return self._worker_id

    @property
    def stopped(self) -> bool:
        """True once stop() was called."""
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Ask run_forever to return after the current cycle."""
        self._stop_event.set()

    def run_forever(self) -> None:
        """Poll until stop() is called."""
        logger.info("Worker %s started", self._worker_id)
        while not self._stop_event.is_set():
            try:
                handled = self.run_once()
            except Exception as e:
                logger.error("Error in job processing loop: %s", e, exc_info=True)
                handled = None

            if handled is None:
                self._stop_event.wait(self._config.poll_interval)
        logger.info("Worker %s stopped", self._worker_id)

    def run_once(self) -> str | None:
        """Run one poll cycle.

        Returns:
            Id of the job that was handled, or None if nothing was claimed.
        """
        candidate = self._db.find_runnable_job(timedelta(seconds=self._config.stale_after))
        if candidate is None:
            return None

        reclaim = candidate.status == JobStatus.RUNNING.value
        job = self._db.claim_job(candidate, self._worker_id)
        if job is None:
            logger.debug("Job %s was claimed by another worker", candidate.id)
            return None

        if reclaim:
            logger.warning(
                "Reclaimed stale job %s (previous worker %s)",
                job.id,
                candidate.worker_id or "unknown",
            )
        else:
            logger.info("Processing job %s for tenant %s", job.id, job.tenant_id)

        self._process(job)
        return job.id

    def _process(self, job: SyncJob) -> None:
        tenant = self._db.get_tenant(job.tenant_id)
        if tenant is None:
            self._safe_fail(job.id, f"Tenant {job.tenant_id} not found")
            return

        try:
            ctx = self._context_factory(self._db, tenant)
        except Exception as e:
            logger.error("Job %s: cannot build clients: %s", job.id, e)
            self._safe_fail(job.id, str(e) or type(e).__name__)
            return

        try:
            SyncOrchestrator(ctx, config=self._config, sleep=self._sleep).run(job_id=job.id)
        except Exception as e:
            # The orchestrator already tried to persist failed; fail_job is a
            # no-op on a terminal job
            logger.error("Job %s failed: %s", job.id, e)
            self._safe_fail(job.id, str(e) or type(e).__name__)
        finally:
            try:
                ctx.close()
            except Exception as e:
                logger.warning("Job %s: error closing clients: %s", job.id, e)

    def _safe_fail(self, job_id: str, message: str) -> None:
        """Mark a job failed; log instead of raising if the write fails."""
        try:
            if self._db.fail_job(job_id, message):
                logger.info("Job %s marked failed: %s", job_id, message)
        except Exception as e:
            logger.error("Could not persist failure of job %s: %s", job_id, e)
