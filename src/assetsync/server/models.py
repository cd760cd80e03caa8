"""SQLAlchemy models for the assetsync store.

This module defines the database schema using SQLAlchemy ORM.
"""

from __future__ import annotations

import json
import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from assetsync.core.types import AssetError, JobStatus

DEFAULT_SYNC_TAGS = "dam-sync"


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(UTC)


def parse_tag_list(raw: str | None) -> list[str]:
    """Parse a comma-separated tag setting into an ordered, de-duplicated list."""
    tags: list[str] = []
    for part in (raw or "").split(","):
        tag = part.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""


class Tenant(Base):
    """An isolated customer scope with its DAM/store settings and sync tags."""

    __tablename__ = "tenants"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    dam_base_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    dam_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    store_base_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    store_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    sync_tags: Mapped[str] = mapped_column(Text, default=DEFAULT_SYNC_TAGS, nullable=False)
    file_folder_template: Mapped[str | None] = mapped_column(Text, nullable=True)
    filename_prefix: Mapped[str | None] = mapped_column(String(255), nullable=True)
    filename_suffix: Mapped[str | None] = mapped_column(String(255), nullable=True)
    alt_text_prefix: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    @property
    def tag_list(self) -> list[str]:
        """Configured sync tags, in order."""
        return parse_tag_list(self.sync_tags)


class SyncJob(Base):
    """One execution attempt of a sync operation."""

    __tablename__ = "sync_jobs"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    tenant_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default=JobStatus.PENDING.value, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    heartbeat_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    worker_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    assets_processed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    assets_created: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    assets_updated: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    fatal_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    error_rows: Mapped[list[SyncJobError]] = relationship(
        "SyncJobError",
        back_populates="job",
        cascade="all, delete-orphan",
        order_by="SyncJobError.position",
    )

    # Indexes
    __table_args__ = (
        Index("idx_sync_jobs_status_created", "status", "created_at"),
        Index("idx_sync_jobs_tenant_status", "tenant_id", "status"),
    )

    @property
    def job_status(self) -> JobStatus:
        """Status as an enum."""
        return JobStatus(self.status)

    @property
    def errors(self) -> list[AssetError]:
        """Per-asset errors, in the order they were recorded."""
        return [AssetError(row.asset_id, row.message) for row in self.error_rows]


class SyncJobError(Base):
    """One entry of a job's ordered error list."""

    __tablename__ = "sync_job_errors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("sync_jobs.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    asset_id: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    # Relationships
    job: Mapped[SyncJob] = relationship("SyncJob", back_populates="error_rows")

    # Indexes
    __table_args__ = (Index("idx_sync_job_errors_job", "job_id", "position"),)


class SyncedAsset(Base):
    """Mapping from one DAM asset to one destination-store file."""

    __tablename__ = "synced_assets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    dam_asset_id: Mapped[str] = mapped_column(String(255), nullable=False)
    file_id: Mapped[str] = mapped_column(Text, nullable=False)
    origin: Mapped[str] = mapped_column(String(10), nullable=False)
    dam_tags: Mapped[str] = mapped_column(Text, default="[]", nullable=False)
    dam_version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    synced_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    # Indexes
    __table_args__ = (
        UniqueConstraint("tenant_id", "dam_asset_id", name="uq_synced_assets_tenant_asset"),
        Index("idx_synced_assets_asset", "dam_asset_id"),
    )

    @property
    def tags(self) -> list[str]:
        """Last-known DAM tags."""
        return list(json.loads(self.dam_tags or "[]"))
