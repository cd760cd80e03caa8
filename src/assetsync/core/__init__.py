"""Core module - Shared configuration, logging and types."""

from assetsync.core.config import RateLimitConfig, Settings, WorkerConfig
from assetsync.core.log import setup_logging
from assetsync.core.types import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    AssetError,
    ErrorCategory,
    JobStatus,
    SyncOrigin,
)

__all__ = [
    # Config
    "RateLimitConfig",
    "Settings",
    "WorkerConfig",
    # Logging
    "setup_logging",
    # Types
    "ACTIVE_STATUSES",
    "AssetError",
    "ErrorCategory",
    "JobStatus",
    "SyncOrigin",
    "TERMINAL_STATUSES",
]
