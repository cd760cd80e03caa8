"""Shared types for assetsync.

This module defines enums and small records used by the sync engine,
the store and the HTTP/CLI surfaces.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class JobStatus(str, Enum):
    """Lifecycle state of a sync job.

    pending -> running -> {completed | failed | cancelled}
    """

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """True for completed, failed and cancelled."""
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED})
ACTIVE_STATUSES = frozenset({JobStatus.PENDING, JobStatus.RUNNING})


class SyncOrigin(str, Enum):
    """How a synced asset got imported."""

    AUTO = "auto"
    MANUAL = "manual"


class ErrorCategory(str, Enum):
    """Classification of a per-asset failure."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class AssetError:
    """A failure recorded against one DAM asset during a job."""

    asset_id: str
    message: str
