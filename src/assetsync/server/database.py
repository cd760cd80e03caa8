"""Job and asset store using SQLAlchemy with SQLite.

This module provides:
- Tenant configuration records
- Sync job lifecycle (create, claim, progress, terminal transitions)
- The ordered per-job error list
- SyncedAsset upserts keyed by (tenant, DAM asset id)

Every status transition is a conditional UPDATE so that concurrent writers
(a second worker, or a cancellation request) never overwrite a state they
did not read.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import and_, create_engine, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from assetsync.core.types import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    AssetError,
    JobStatus,
    SyncOrigin,
)
from assetsync.server.models import (
    Base,
    SyncedAsset,
    SyncJob,
    SyncJobError,
    Tenant,
    _utcnow,
)

if TYPE_CHECKING:
    from sqlalchemy import Engine

# Tenant columns that may be set through create_tenant/update_tenant
TENANT_SETTINGS = frozenset(
    {
        "dam_base_url",
        "dam_token",
        "store_base_url",
        "store_token",
        "sync_tags",
        "file_folder_template",
        "filename_prefix",
        "filename_suffix",
        "alt_text_prefix",
    }
)

_ACTIVE = [status.value for status in ACTIVE_STATUSES]
_TERMINAL = [status.value for status in TERMINAL_STATUSES]


class Database:
    """SQLAlchemy database for tenants, sync jobs and synced assets.

    Uses SQLite with WAL mode for better concurrency with multiple readers.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the database.

        Args:
            db_path: Path to the SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        # Create engine with check_same_thread=False for multi-threaded access
        self._engine: Engine = create_engine(
            f"sqlite:///{self._db_path}",
            connect_args={"check_same_thread": False},
            echo=False,
        )

        # Enable WAL mode
        with self._engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA journal_mode=WAL")
            conn.exec_driver_sql("PRAGMA foreign_keys=ON")

        # Create tables if they don't exist
        Base.metadata.create_all(self._engine)

    @property
    def path(self) -> Path:
        """Path of the SQLite file."""
        return self._db_path

    def close(self) -> None:
        """Close the database connection."""
        self._engine.dispose()

    def _session(self) -> Session:
        """Create a new database session."""
        return Session(self._engine)

    # === Tenant operations ===

    def create_tenant(self, name: str, **settings: str | None) -> Tenant:
        """Create a tenant.

        Args:
            name: Unique tenant name.
            **settings: Any of TENANT_SETTINGS.

        Returns:
            Created Tenant object.

        Raises:
            ValueError: If an unknown setting is passed.
            IntegrityError: If name already exists.
        """
        values = _tenant_values(settings)
        with self._session() as session:
            tenant = Tenant(name=name, **values)
            session.add(tenant)
            session.commit()
            session.refresh(tenant)
            session.expunge(tenant)
            return tenant

    def get_tenant(self, tenant_id: str) -> Tenant | None:
        """Get a tenant by ID."""
        with self._session() as session:
            tenant = session.get(Tenant, tenant_id)
            if tenant:
                session.expunge(tenant)
            return tenant

    def get_tenant_by_name(self, name: str) -> Tenant | None:
        """Get a tenant by name."""
        with self._session() as session:
            stmt = select(Tenant).where(Tenant.name == name)
            tenant = session.execute(stmt).scalar_one_or_none()
            if tenant:
                session.expunge(tenant)
            return tenant

    def update_tenant(self, tenant_id: str, **settings: str | None) -> Tenant | None:
        """Update tenant settings.

        Returns:
            Updated tenant, or None if it does not exist.
        """
        values = _tenant_values(settings)
        with self._session() as session:
            tenant = session.get(Tenant, tenant_id)
            if tenant is None:
                return None
            for key, value in values.items():
                setattr(tenant, key, value)
            session.commit()
            session.refresh(tenant)
            session.expunge(tenant)
            return tenant

    def list_tenants(self) -> list[Tenant]:
        """List all tenants ordered by name."""
        with self._session() as session:
            stmt = select(Tenant).order_by(Tenant.name)
            tenants = list(session.execute(stmt).scalars().all())
            for tenant in tenants:
                session.expunge(tenant)
            return tenants

    # === Job operations ===

    def create_job(self, tenant_id: str) -> SyncJob:
        """Enqueue a pending job for a tenant.

        Raises:
            IntegrityError: If the tenant does not exist.
        """
        with self._session() as session:
            job = SyncJob(tenant_id=tenant_id, status=JobStatus.PENDING.value)
            session.add(job)
            session.commit()
            return self._detached_job(session, job.id)

    def start_job(self, tenant_id: str, worker_id: str) -> SyncJob:
        """Create a job that is already running (ad-hoc synchronous sync)."""
        now = _utcnow()
        with self._session() as session:
            job = SyncJob(
                tenant_id=tenant_id,
                status=JobStatus.RUNNING.value,
                started_at=now,
                heartbeat_at=now,
                worker_id=worker_id,
            )
            session.add(job)
            session.commit()
            return self._detached_job(session, job.id)

    def get_job(self, job_id: str) -> SyncJob | None:
        """Get a job with its error list loaded."""
        with self._session() as session:
            return self._detached_job(session, job_id)

    def _detached_job(self, session: Session, job_id: str) -> SyncJob | None:
        stmt = (
            select(SyncJob)
            .where(SyncJob.id == job_id)
            .options(selectinload(SyncJob.error_rows))
            .execution_options(populate_existing=True)
        )
        job = session.execute(stmt).scalar_one_or_none()
        if job:
            session.expunge(job)
        return job

    def list_jobs(self, tenant_id: str | None = None, limit: int = 50) -> list[SyncJob]:
        """List jobs, newest first."""
        with self._session() as session:
            stmt = select(SyncJob).options(selectinload(SyncJob.error_rows))
            if tenant_id is not None:
                stmt = stmt.where(SyncJob.tenant_id == tenant_id)
            stmt = stmt.order_by(SyncJob.created_at.desc()).limit(limit)
            jobs = list(session.execute(stmt).scalars().all())
            for job in jobs:
                session.expunge(job)
            return jobs

    def get_job_status(self, job_id: str) -> JobStatus | None:
        """Read only the status column (used for cancellation checks)."""
        with self._session() as session:
            status = session.execute(
                select(SyncJob.status).where(SyncJob.id == job_id)
            ).scalar_one_or_none()
            return JobStatus(status) if status is not None else None

    def find_runnable_job(
        self,
        stale_after: timedelta,
        now: datetime | None = None,
    ) -> SyncJob | None:
        """Find the oldest job a worker may pick up.

        Runnable means pending, or running with no start time, or running
        with no progress since ``now - stale_after`` (a crashed worker).

        Args:
            stale_after: Staleness threshold.
            now: Reference time (defaults to the current UTC time).

        Returns:
            The oldest runnable job, or None.
        """
        cutoff = (now or _utcnow()) - stale_after
        last_progress = func.coalesce(SyncJob.heartbeat_at, SyncJob.started_at)
        stmt = (
            select(SyncJob)
            .where(
                or_(
                    SyncJob.status == JobStatus.PENDING.value,
                    and_(
                        SyncJob.status == JobStatus.RUNNING.value,
                        or_(SyncJob.started_at.is_(None), last_progress < cutoff),
                    ),
                )
            )
            .order_by(SyncJob.created_at, SyncJob.id)
            .limit(1)
        )
        with self._session() as session:
            job = session.execute(stmt).scalar_one_or_none()
            if job:
                session.expunge(job)
            return job

    def claim_job(self, job: SyncJob, worker_id: str) -> SyncJob | None:
        """Atomically move a job found by find_runnable_job to running.

        The UPDATE only applies if status and owner are still what the caller
        read, so two workers racing on the same job cannot both win.
        started_at is only set if it was never set.

        Returns:
            The claimed job, or None if another writer got there first.
        """
        now = _utcnow()
        owner_matches = (
            SyncJob.worker_id.is_(None)
            if job.worker_id is None
            else SyncJob.worker_id == job.worker_id
        )
        stmt = (
            update(SyncJob)
            .where(SyncJob.id == job.id, SyncJob.status == job.status, owner_matches)
            .values(
                status=JobStatus.RUNNING.value,
                worker_id=worker_id,
                heartbeat_at=now,
                started_at=func.coalesce(SyncJob.started_at, now),
            )
        )
        with self._session() as session:
            result = session.execute(stmt)
            session.commit()
            if result.rowcount != 1:
                return None
            return self._detached_job(session, job.id)

    def record_progress(self, job_id: str, processed: int, created: int, updated: int) -> bool:
        """Write running counts and refresh the heartbeat.

        Counts never go down while the job runs, including after a stale
        job was reclaimed by a run that counts again from zero.

        Returns:
            True if the job was still running.
        """
        stmt = (
            update(SyncJob)
            .where(SyncJob.id == job_id, SyncJob.status == JobStatus.RUNNING.value)
            .values(
                assets_processed=func.max(SyncJob.assets_processed, processed),
                assets_created=func.max(SyncJob.assets_created, created),
                assets_updated=func.max(SyncJob.assets_updated, updated),
                heartbeat_at=_utcnow(),
            )
        )
        with self._session() as session:
            result = session.execute(stmt)
            session.commit()
            return result.rowcount == 1

    def complete_job(
        self,
        job_id: str,
        processed: int,
        created: int,
        updated: int,
        errors: Sequence[AssetError] = (),
    ) -> bool:
        """Mark an active job completed with its final counts and residual errors.

        Returns:
            False if the job was no longer pending/running (e.g. cancelled).
        """
        stmt = (
            update(SyncJob)
            .where(SyncJob.id == job_id, SyncJob.status.in_(_ACTIVE))
            .values(
                status=JobStatus.COMPLETED.value,
                completed_at=_utcnow(),
                assets_processed=processed,
                assets_created=created,
                assets_updated=updated,
                fatal_error=None,
            )
        )
        with self._session() as session:
            result = session.execute(stmt)
            if result.rowcount != 1:
                session.rollback()
                return False
            self._replace_errors(session, job_id, errors)
            session.commit()
            return True

    def fail_job(self, job_id: str, message: str) -> bool:
        """Mark an active job failed with a batch-level error message.

        Returns:
            False if the job was already terminal or does not exist.
        """
        stmt = (
            update(SyncJob)
            .where(SyncJob.id == job_id, SyncJob.status.in_(_ACTIVE))
            .values(
                status=JobStatus.FAILED.value,
                completed_at=_utcnow(),
                fatal_error=message,
            )
        )
        with self._session() as session:
            result = session.execute(stmt)
            session.commit()
            return result.rowcount == 1

    def cancel_job(self, job_id: str) -> bool:
        """Flip a pending or running job to cancelled.

        Returns:
            False if the job was already terminal or does not exist.
        """
        stmt = (
            update(SyncJob)
            .where(SyncJob.id == job_id, SyncJob.status.in_(_ACTIVE))
            .values(status=JobStatus.CANCELLED.value, completed_at=_utcnow())
        )
        with self._session() as session:
            result = session.execute(stmt)
            session.commit()
            return result.rowcount == 1

    def record_cancelled(
        self,
        job_id: str,
        processed: int,
        created: int,
        updated: int,
        errors: Sequence[AssetError] = (),
    ) -> bool:
        """Persist partial counts on a job that was cancelled mid-run.

        Status stays cancelled; completed_at keeps the cancellation time.
        """
        stmt = (
            update(SyncJob)
            .where(SyncJob.id == job_id, SyncJob.status == JobStatus.CANCELLED.value)
            .values(
                assets_processed=processed,
                assets_created=created,
                assets_updated=updated,
                completed_at=func.coalesce(SyncJob.completed_at, _utcnow()),
            )
        )
        with self._session() as session:
            result = session.execute(stmt)
            if result.rowcount != 1:
                session.rollback()
                return False
            self._replace_errors(session, job_id, errors)
            session.commit()
            return True

    def _replace_errors(
        self, session: Session, job_id: str, errors: Iterable[AssetError]
    ) -> None:
        session.execute(delete(SyncJobError).where(SyncJobError.job_id == job_id))
        session.add_all(
            SyncJobError(
                job_id=job_id,
                position=position,
                asset_id=error.asset_id,
                message=error.message,
            )
            for position, error in enumerate(errors)
        )

    def recent_job_errors(self, tenant_id: str, limit: int = 10) -> list[AssetError]:
        """Errors from the tenant's most recent terminal jobs, newest job first.

        Args:
            tenant_id: Tenant ID.
            limit: Number of jobs to look back.
        """
        with self._session() as session:
            job_ids = list(
                session.execute(
                    select(SyncJob.id)
                    .where(SyncJob.tenant_id == tenant_id, SyncJob.status.in_(_TERMINAL))
                    .order_by(SyncJob.created_at.desc())
                    .limit(limit)
                ).scalars()
            )
            if not job_ids:
                return []
            rows = session.execute(
                select(SyncJobError)
                .where(SyncJobError.job_id.in_(job_ids))
                .order_by(SyncJobError.position)
            ).scalars()
            by_job: dict[str, list[AssetError]] = {job_id: [] for job_id in job_ids}
            for row in rows:
                by_job[row.job_id].append(AssetError(row.asset_id, row.message))
            return [error for job_id in job_ids for error in by_job[job_id]]

    # === Synced asset operations ===

    def get_synced_asset(self, tenant_id: str, asset_id: str) -> SyncedAsset | None:
        """Get the mapping row for one DAM asset."""
        with self._session() as session:
            asset = self._find_synced_asset(session, tenant_id, asset_id)
            if asset:
                session.expunge(asset)
            return asset

    def _find_synced_asset(
        self, session: Session, tenant_id: str, asset_id: str
    ) -> SyncedAsset | None:
        stmt = select(SyncedAsset).where(
            SyncedAsset.tenant_id == tenant_id,
            SyncedAsset.dam_asset_id == asset_id,
        )
        return session.execute(stmt).scalar_one_or_none()

    def upsert_synced_asset(
        self,
        tenant_id: str,
        asset_id: str,
        file_id: str,
        version: int,
        tags: Sequence[str],
        origin: SyncOrigin = SyncOrigin.AUTO,
        allow_same_version: bool = False,
    ) -> bool:
        """Create or update the mapping for a DAM asset.

        The stored version never decreases: a write with an older version
        (or an equal one, unless allow_same_version) is not applied.

        Returns:
            True if the row was written.
        """
        now = _utcnow()
        with self._session() as session:
            existing = self._find_synced_asset(session, tenant_id, asset_id)
            if existing is None:
                session.add(
                    SyncedAsset(
                        tenant_id=tenant_id,
                        dam_asset_id=asset_id,
                        file_id=file_id,
                        origin=SyncOrigin(origin).value,
                        dam_tags=json.dumps(list(tags)),
                        dam_version=version,
                        synced_at=now,
                    )
                )
                try:
                    session.commit()
                    return True
                except IntegrityError:
                    # Inserted concurrently; fall through to the update path
                    session.rollback()
                    existing = self._find_synced_asset(session, tenant_id, asset_id)
                    if existing is None:
                        raise

            stored = existing.dam_version or 0
            if version < stored or (version == stored and not allow_same_version):
                return False

            existing.file_id = file_id
            existing.origin = SyncOrigin(origin).value
            existing.dam_tags = json.dumps(list(tags))
            existing.dam_version = version
            existing.synced_at = now
            session.commit()
            return True

    def list_synced_assets(self, tenant_id: str) -> list[SyncedAsset]:
        """List a tenant's synced assets ordered by DAM asset id."""
        with self._session() as session:
            stmt = (
                select(SyncedAsset)
                .where(SyncedAsset.tenant_id == tenant_id)
                .order_by(SyncedAsset.dam_asset_id)
            )
            assets = list(session.execute(stmt).scalars().all())
            for asset in assets:
                session.expunge(asset)
            return assets


def _tenant_values(settings: dict[str, Any]) -> dict[str, Any]:
    unknown = set(settings) - TENANT_SETTINGS
    if unknown:
        raise ValueError(f"Unknown tenant settings: {', '.join(sorted(unknown))}")
    values = dict(settings)
    if values.get("sync_tags") is None:
        values.pop("sync_tags", None)
    return values
