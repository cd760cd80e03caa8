"""Shared types and dataclasses for sync operations.

This module provides:
- SyncError and its subclasses: Exception classes
- CategorizedError: A per-asset failure with its classification
- SingleAssetResult: Outcome of syncing one asset
- SyncResult: Outcome of a full tag sync
- AssetRetryOutcome, RetryResult: Outcome of a retry pass
- ImportedFile: What the import pipeline created in the store
"""

from __future__ import annotations

from dataclasses import dataclass, field

from assetsync.core.types import AssetError, ErrorCategory


class SyncError(Exception):
    """Base exception for sync errors."""


class ConfigurationError(SyncError):
    """A tenant lacks the settings needed to reach the DAM or the store."""


class JobNotFoundError(SyncError):
    """No job with the given id."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"Sync job {job_id} not found")


class TenantNotFoundError(SyncError):
    """No tenant with the given id."""

    def __init__(self, tenant_id: str) -> None:
        self.tenant_id = tenant_id
        super().__init__(f"Tenant {tenant_id} not found")


class JobStateError(SyncError):
    """The job is not in a state that allows the requested transition."""


class AssetImportError(SyncError):
    """The import pipeline could not produce a file for an asset."""


@dataclass(frozen=True)
class CategorizedError:
    """A per-asset failure with its classification.

    Attributes:
        asset_id: DAM asset id (empty when classifying a bare message).
        message: Original error message.
        category: transient, permanent or unknown.
    """

    asset_id: str
    message: str
    category: ErrorCategory

    @property
    def retryable(self) -> bool:
        """Only transient failures are worth retrying."""
        return self.category == ErrorCategory.TRANSIENT

    def to_asset_error(self) -> AssetError:
        """Drop the classification."""
        return AssetError(self.asset_id, self.message)


@dataclass
class SingleAssetResult:
    """Result of syncing one DAM asset.

    Exactly one of created, updated, skipped is True on success; error is
    set (and all three False) on failure.
    """

    asset_id: str
    created: bool = False
    updated: bool = False
    skipped: bool = False
    error: str | None = None
    file_id: str | None = None

    @property
    def success(self) -> bool:
        """True if the asset did not fail."""
        return self.error is None


@dataclass
class ImportedFile:
    """A file created in the content store for a DAM asset."""

    file_id: str
    file_url: str
    path: str
    version: int
    tags: list[str] = field(default_factory=list)


@dataclass
class AssetRetryOutcome:
    """Outcome for one asset in a retry pass."""

    asset_id: str
    success: bool
    created: bool = False
    updated: bool = False
    skipped: bool = False
    error: str | None = None


@dataclass
class RetryResult:
    """Result of a retry pass.

    Attributes:
        processed: Assets actually re-run.
        successful: Re-runs that created or updated a file.
        failed: Re-runs that failed again.
        skipped: Assets not re-run (non-transient when only_transient) or
            re-run and found up to date.
        errors: Classified errors for failures and for assets left out.
        results: Per-asset outcomes, in retry order.
    """

    processed: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[CategorizedError] = field(default_factory=list)
    results: list[AssetRetryOutcome] = field(default_factory=list)


@dataclass
class SyncResult:
    """Result of a full sync for one tenant.

    Attributes:
        processed: Candidates that went through single-asset sync.
        created: Files created in the store.
        updated: Files replaced after a DAM version change.
        errors: Residual per-asset errors after the automatic retry.
        cancelled: True if the job was cancelled mid-run.
        retry: Result of the automatic retry pass, if one ran.
    """

    processed: int = 0
    created: int = 0
    updated: int = 0
    errors: list[AssetError] = field(default_factory=list)
    cancelled: bool = False
    retry: RetryResult | None = None

    @property
    def skipped(self) -> int:
        """Candidates that were up to date or out of scope."""
        return max(0, self.processed - self.created - self.updated - len(self.errors))
