"""Asset synchronization engine.

Architecture:
    SyncWorker -> SyncOrchestrator -> sync_single_asset -> import_asset

Components:
- **RateLimiter**: Token bucket shared by every DAM request
- **classify / classify_batch**: Transient vs permanent failure classification
- **sync_single_asset**: Tag check, version check, import, mapping upsert
- **SyncOrchestrator**: Full tag sync with cancellation and automatic retry
- **retry_failed_assets**: Replay of previously failed assets
- **SyncWorker**: Polls the job store, claims and runs jobs
"""

from assetsync.sync.context import ClientFactory, ContextFactory, SyncContext
from assetsync.sync.errors import ErrorBreakdown, classify, classify_batch, is_retryable
from assetsync.sync.importer import detect_mime_type, fix_wildcard_mime_type, import_asset
from assetsync.sync.jobs import create_pending_job, request_cancellation, retry
from assetsync.sync.orchestrator import SyncOrchestrator
from assetsync.sync.rate_limiter import RateLimiter
from assetsync.sync.retry import retry_failed_assets
from assetsync.sync.single_asset import sync_single_asset
from assetsync.sync.types import (
    AssetImportError,
    AssetRetryOutcome,
    CategorizedError,
    ConfigurationError,
    ImportedFile,
    JobNotFoundError,
    JobStateError,
    RetryResult,
    SingleAssetResult,
    SyncError,
    SyncResult,
    TenantNotFoundError,
)
from assetsync.sync.worker import SyncWorker

__all__ = [
    # Context
    "ClientFactory",
    "ContextFactory",
    "SyncContext",
    # Rate limiting
    "RateLimiter",
    # Classification
    "ErrorBreakdown",
    "classify",
    "classify_batch",
    "is_retryable",
    # Import
    "detect_mime_type",
    "fix_wildcard_mime_type",
    "import_asset",
    # Engine
    "SyncOrchestrator",
    "SyncWorker",
    "retry_failed_assets",
    "sync_single_asset",
    # Job operations
    "create_pending_job",
    "request_cancellation",
    "retry",
    # Types
    "AssetImportError",
    "AssetRetryOutcome",
    "CategorizedError",
    "ConfigurationError",
    "ImportedFile",
    "JobNotFoundError",
    "JobStateError",
    "RetryResult",
    "SingleAssetResult",
    "SyncError",
    "SyncResult",
    "TenantNotFoundError",
]
