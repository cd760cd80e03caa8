"""Tests for the full tag sync."""

from __future__ import annotations

from unittest.mock import MagicMock, PropertyMock, patch

import pytest

from assetsync.clients.errors import APIError, ServerError
from assetsync.core.config import WorkerConfig
from assetsync.core.types import JobStatus
from assetsync.server.database import Database
from assetsync.server.models import SyncJob, Tenant
from assetsync.sync.context import SyncContext
from assetsync.sync.orchestrator import SyncOrchestrator

UNAVAILABLE = "HTTP 503 Service Unavailable"


@pytest.fixture
def sleeps() -> list[float]:
    """Records every backoff sleep."""
    return []


@pytest.fixture
def orchestrator(ctx: SyncContext, sleeps: list[float]) -> SyncOrchestrator:
    """Orchestrator with default settings and a recording sleep."""
    return SyncOrchestrator(ctx, sleep=sleeps.append)


@pytest.fixture
def job(db: Database, tenant: Tenant) -> SyncJob:
    """A running job for the tenant."""
    return db.start_job(tenant.id, "worker-test")


class TestRun:
    """Tests for a normal run."""

    def test_imports_tagged_assets(
        self,
        db: Database,
        ctx: SyncContext,
        orchestrator: SyncOrchestrator,
        job: SyncJob,
        sleeps: list[float],
    ) -> None:
        """Should import every tagged asset and complete the job."""
        ctx.dam.add("A1", ["promo"])
        ctx.dam.add("A2", ["promo", "web"])
        ctx.dam.add("A3", ["other"])

        result = orchestrator.run(job_id=job.id)

        assert result.processed == 2
        assert result.created == 2
        assert result.updated == 0
        assert result.errors == []
        assert result.cancelled is False
        assert result.retry is None
        assert sleeps == []

        stored = db.get_job(job.id)
        assert stored is not None
        assert stored.job_status == JobStatus.COMPLETED
        assert stored.assets_processed == 2
        assert stored.assets_created == 2
        assert stored.completed_at is not None
        assert stored.errors == []
        assert [a.dam_asset_id for a in db.list_synced_assets(ctx.tenant.id)] == ["A1", "A2"]

    def test_up_to_date_assets_skipped(
        self, db: Database, ctx: SyncContext, orchestrator: SyncOrchestrator, job: SyncJob
    ) -> None:
        """Should count unchanged assets as processed but not imported."""
        ctx.dam.add("A1", ["promo"], version=2)
        db.upsert_synced_asset(ctx.tenant.id, "A1", "file-0", 2, ["promo"])

        result = orchestrator.run(job_id=job.id)

        assert result.processed == 1
        assert result.created == 0
        assert result.updated == 0
        assert result.skipped == 1
        assert ctx.store.uploads == []

    def test_changed_asset_updated(
        self, db: Database, ctx: SyncContext, orchestrator: SyncOrchestrator, job: SyncJob
    ) -> None:
        """Should replace assets whose DAM version increased."""
        ctx.dam.add("A1", ["promo"], version=3)
        db.upsert_synced_asset(ctx.tenant.id, "A1", "file-0", 2, ["promo"])

        result = orchestrator.run(job_id=job.id)

        assert result.updated == 1
        stored = db.get_job(job.id)
        assert stored is not None
        assert stored.assets_updated == 1

    def test_force(
        self, db: Database, ctx: SyncContext, orchestrator: SyncOrchestrator, job: SyncJob
    ) -> None:
        """Should re-import current assets when forced."""
        ctx.dam.add("A1", ["promo"], version=2)
        db.upsert_synced_asset(ctx.tenant.id, "A1", "file-0", 2, ["promo"])

        result = orchestrator.run(job_id=job.id, force=True)

        assert result.updated == 1
        assert len(ctx.store.uploads) == 1

    def test_deduplicates_across_tags(
        self, db: Database, ctx: SyncContext, tenant: Tenant, sleeps: list[float]
    ) -> None:
        """Should process an asset listed under two sync tags once."""
        ctx.tenant = db.update_tenant(tenant.id, sync_tags="promo, web")
        ctx.dam.add("A1", ["promo", "web"])
        ctx.dam.add("A2", ["web"])

        result = SyncOrchestrator(ctx, sleep=sleeps.append).run()

        assert ctx.dam.listed_tags == ["promo", "web"]
        assert ctx.dam.download_calls == ["A1", "A2"]
        assert result.processed == 2

    def test_no_sync_tags(
        self, db: Database, ctx: SyncContext, tenant: Tenant, sleeps: list[float], job: SyncJob
    ) -> None:
        """Should complete immediately when the tenant has no sync tags."""
        ctx.tenant = db.update_tenant(tenant.id, sync_tags="")

        result = SyncOrchestrator(ctx, sleep=sleeps.append).run(job_id=job.id)

        assert result.processed == 0
        assert ctx.dam.listed_tags == []
        stored = db.get_job(job.id)
        assert stored is not None
        assert stored.job_status == JobStatus.COMPLETED

    def test_ad_hoc_run(self, db: Database, ctx: SyncContext, orchestrator: SyncOrchestrator) -> None:
        """Should sync without a job and persist only the mappings."""
        ctx.dam.add("A1", ["promo"])

        result = orchestrator.run()

        assert result.created == 1
        assert db.list_jobs() == []
        assert db.get_synced_asset(ctx.tenant.id, "A1") is not None


class TestAutomaticRetry:
    """Tests for the second pass over transient failures."""

    def test_transient_failure_recovered(
        self,
        db: Database,
        ctx: SyncContext,
        orchestrator: SyncOrchestrator,
        job: SyncJob,
        sleeps: list[float],
    ) -> None:
        """Should retry a 503 once after the delay and count the recovery."""
        ctx.dam.add("A1", ["promo"])
        ctx.dam.add("A2", ["promo"])
        ctx.dam.fail("A2", ServerError(UNAVAILABLE, 503))

        result = orchestrator.run(job_id=job.id)

        assert sleeps == [5.0]
        assert result.created == 2
        assert result.errors == []
        assert result.retry is not None
        assert result.retry.successful == 1
        assert ctx.dam.download_calls == ["A1", "A2", "A2"]

        stored = db.get_job(job.id)
        assert stored is not None
        assert stored.job_status == JobStatus.COMPLETED
        assert stored.assets_processed == 2
        assert stored.assets_created == 2
        assert stored.errors == []

    def test_transient_failure_persists(
        self, db: Database, ctx: SyncContext, orchestrator: SyncOrchestrator, job: SyncJob
    ) -> None:
        """Should keep the error when the retry fails too."""
        ctx.dam.add("A1", ["promo"])
        ctx.dam.fail("A1", ServerError(UNAVAILABLE, 503), ServerError(UNAVAILABLE, 503))

        result = orchestrator.run(job_id=job.id)

        assert result.created == 0
        assert [e.asset_id for e in result.errors] == ["A1"]
        assert result.retry is not None
        assert result.retry.failed == 1

        stored = db.get_job(job.id)
        assert stored is not None
        assert stored.job_status == JobStatus.COMPLETED
        assert [e.asset_id for e in stored.errors] == ["A1"]
        assert UNAVAILABLE in stored.errors[0].message

    def test_permanent_failure_not_retried(
        self,
        ctx: SyncContext,
        orchestrator: SyncOrchestrator,
        job: SyncJob,
        sleeps: list[float],
    ) -> None:
        """Should not sleep or retry when no failure is transient."""
        ctx.dam.add("A1", ["promo"])
        ctx.dam.fail("A1", APIError("HTTP 400 Bad Request", 400))

        result = orchestrator.run(job_id=job.id)

        assert sleeps == []
        assert result.retry is None
        assert ctx.dam.download_calls == ["A1"]
        assert len(result.errors) == 1

    def test_disabled(
        self, ctx: SyncContext, job: SyncJob, sleeps: list[float]
    ) -> None:
        """Should leave transient errors alone when auto retry is off."""
        ctx.dam.add("A1", ["promo"])
        ctx.dam.fail("A1", ServerError(UNAVAILABLE, 503))
        orchestrator = SyncOrchestrator(
            ctx, config=WorkerConfig(auto_retry=False), sleep=sleeps.append
        )

        result = orchestrator.run(job_id=job.id)

        assert sleeps == []
        assert len(result.errors) == 1

    def test_forced_run_retries_with_force(
        self,
        db: Database,
        ctx: SyncContext,
        orchestrator: SyncOrchestrator,
        job: SyncJob,
    ) -> None:
        """Should re-import a current asset on retry when the run was forced."""
        ctx.dam.add("A1", ["promo"], version=2)
        db.upsert_synced_asset(ctx.tenant.id, "A1", "file-0", 2, ["promo"])
        ctx.dam.fail("A1", ServerError(UNAVAILABLE, 503))

        result = orchestrator.run(job_id=job.id, force=True)

        assert ctx.dam.download_calls == ["A1", "A1"]
        assert len(ctx.store.uploads) == 1
        assert result.updated == 1
        assert result.errors == []
        assert result.retry is not None
        assert result.retry.successful == 1
        assert result.retry.skipped == 0

        stored = db.get_job(job.id)
        assert stored is not None
        assert stored.assets_updated == 1
        assert stored.errors == []

    def test_forced_run_keeps_error_when_retry_skips(
        self,
        db: Database,
        ctx: SyncContext,
        orchestrator: SyncOrchestrator,
        job: SyncJob,
    ) -> None:
        """Should not count a skipped retry as recovered on a forced run."""
        ctx.dam.add("A1", ["promo"], version=2)
        db.upsert_synced_asset(ctx.tenant.id, "A1", "file-0", 2, ["promo"])
        ctx.dam.fail("A1", ServerError(UNAVAILABLE, 503))
        ctx.dam.on_download = lambda asset_id: ctx.dam.add(asset_id, ["archived"], version=2)

        result = orchestrator.run(job_id=job.id, force=True)

        assert ctx.store.uploads == []
        assert result.updated == 0
        assert [e.asset_id for e in result.errors] == ["A1"]
        assert UNAVAILABLE in result.errors[0].message
        assert result.retry is not None
        assert result.retry.skipped == 1

        stored = db.get_job(job.id)
        assert stored is not None
        assert [e.asset_id for e in stored.errors] == ["A1"]

    def test_rate_limit_hits_counted_per_run(
        self, ctx: SyncContext, orchestrator: SyncOrchestrator, job: SyncJob
    ) -> None:
        """Should log only the limiter waits that happened during this run."""
        ctx.dam.add("A1", ["promo"])
        limiter = MagicMock()
        type(limiter).rate_limit_hits = PropertyMock(side_effect=[7, 9])
        ctx.rate_limiter = limiter

        with patch("assetsync.sync.orchestrator.logger") as mock_logger:
            orchestrator.run(job_id=job.id)

        summary = [
            call.args
            for call in mock_logger.info.call_args_list
            if call.args[0].startswith("Job %s completed")
        ]
        assert len(summary) == 1
        assert summary[0][-1] == 2


class TestCancellation:
    """Tests for cooperative cancellation."""

    def test_cancel_mid_run(
        self, db: Database, ctx: SyncContext, orchestrator: SyncOrchestrator, job: SyncJob
    ) -> None:
        """Should stop before the next asset and keep the partial counts."""
        for asset_id in ("A1", "A2", "A3"):
            ctx.dam.add(asset_id, ["promo"])

        def cancel_on_second(asset_id: str) -> None:
            if asset_id == "A2":
                db.cancel_job(job.id)

        ctx.dam.on_download = cancel_on_second

        result = orchestrator.run(job_id=job.id)

        assert result.cancelled is True
        assert result.processed == 2
        assert ctx.dam.download_calls == ["A1", "A2"]

        stored = db.get_job(job.id)
        assert stored is not None
        assert stored.job_status == JobStatus.CANCELLED
        assert stored.assets_processed == 2
        assert stored.assets_created == 2

    def test_cancelled_before_start(
        self, db: Database, ctx: SyncContext, orchestrator: SyncOrchestrator, job: SyncJob
    ) -> None:
        """Should not sync anything for a job cancelled before the first asset."""
        ctx.dam.add("A1", ["promo"])
        db.cancel_job(job.id)

        result = orchestrator.run(job_id=job.id)

        assert result.cancelled is True
        assert result.processed == 0
        assert ctx.dam.download_calls == []

    def test_cancel_during_retry_delay(
        self, db: Database, ctx: SyncContext, job: SyncJob
    ) -> None:
        """Should keep cancelled status when cancelled before completion is written."""
        ctx.dam.add("A1", ["promo"])
        ctx.dam.fail("A1", ServerError(UNAVAILABLE, 503))

        result = SyncOrchestrator(ctx, sleep=lambda _: db.cancel_job(job.id)).run(job_id=job.id)

        assert result.cancelled is True
        stored = db.get_job(job.id)
        assert stored is not None
        assert stored.job_status == JobStatus.CANCELLED
        assert stored.assets_processed == 1


class TestFatalErrors:
    """Tests for batch-level failures."""

    def test_listing_failure_fails_job(
        self, db: Database, ctx: SyncContext, orchestrator: SyncOrchestrator, job: SyncJob
    ) -> None:
        """Should mark the job failed and re-raise."""
        ctx.dam.listing_error = ServerError(UNAVAILABLE, 503)

        with pytest.raises(ServerError):
            orchestrator.run(job_id=job.id)

        stored = db.get_job(job.id)
        assert stored is not None
        assert stored.job_status == JobStatus.FAILED
        assert stored.fatal_error == UNAVAILABLE
        assert stored.completed_at is not None


class TestConcurrentFinish:
    """Tests for a job finished by someone else during the run."""

    def test_finished_by_another_writer(
        self, db: Database, ctx: SyncContext, orchestrator: SyncOrchestrator, job: SyncJob
    ) -> None:
        """Should not report a job completed elsewhere as cancelled."""
        ctx.dam.add("A1", ["promo"])
        ctx.dam.on_download = lambda _: db.complete_job(job.id, 0, 0, 0)

        result = orchestrator.run(job_id=job.id)

        assert result.cancelled is False
        assert result.created == 1
        stored = db.get_job(job.id)
        assert stored is not None
        assert stored.job_status == JobStatus.COMPLETED
        assert stored.assets_processed == 0
