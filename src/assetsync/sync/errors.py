"""Classification of per-asset sync failures.

A failure message is transient (worth retrying), permanent, or unknown.
Transient patterns win over permanent ones, so "HTTP 503 ... not found" is
retried. Anything unrecognised is unknown and is not retried.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from assetsync.core.types import AssetError, ErrorCategory
from assetsync.sync.types import CategorizedError

TRANSIENT_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"timeout",
        r"rate.?limit",
        r"temporary",
        r"503",
        r"502",
        r"504",
        r"429",
        r"network",
        r"connection",
        r"ECONNRESET",
        r"ETIMEDOUT",
        r"ENOTFOUND",
        r"ECONNREFUSED",
        r"service unavailable",
        r"bad gateway",
        r"gateway timeout",
        r"too many requests",
        r"temporarily unavailable",
        r"retry",
    )
)

PERMANENT_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"not found",
        r"404",
        r"unauthorized",
        r"401",
        r"forbidden",
        r"403",
        r"400",
        r"bad request",
        r"malformed",
        r"invalid",
        r"unsupported",
        r"not supported",
        r"not allowed",
        r"405",
        r"permission denied",
        r"access denied",
        r"authentication failed",
        r"expired token",
        r"corrupt",
    )
)


def _category(message: str) -> ErrorCategory:
    text = message.strip()
    if any(pattern.search(text) for pattern in TRANSIENT_PATTERNS):
        return ErrorCategory.TRANSIENT
    if any(pattern.search(text) for pattern in PERMANENT_PATTERNS):
        return ErrorCategory.PERMANENT
    return ErrorCategory.UNKNOWN


def classify(error: str | BaseException, asset_id: str = "") -> CategorizedError:
    """Classify a failure message.

    Args:
        error: Message, or an exception classified by its string form.
        asset_id: Asset the failure belongs to.

    Returns:
        The message with its category.
    """
    message = error if isinstance(error, str) else str(error)
    return CategorizedError(asset_id=asset_id, message=message, category=_category(message))


def is_retryable(error: str | BaseException) -> bool:
    """True if the failure is transient."""
    return classify(error).retryable


@dataclass
class ErrorBreakdown:
    """Errors partitioned by category, each list in input order."""

    transient: list[CategorizedError] = field(default_factory=list)
    permanent: list[CategorizedError] = field(default_factory=list)
    unknown: list[CategorizedError] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.transient) + len(self.permanent) + len(self.unknown)

    @property
    def retryable(self) -> int:
        return len(self.transient)

    def counts(self) -> dict[str, int]:
        """Counts per category plus total and retryable."""
        return {
            "total": self.total,
            ErrorCategory.TRANSIENT.value: len(self.transient),
            ErrorCategory.PERMANENT.value: len(self.permanent),
            ErrorCategory.UNKNOWN.value: len(self.unknown),
            "retryable": self.retryable,
        }


def classify_batch(errors: Iterable[AssetError]) -> ErrorBreakdown:
    """Classify a list of per-asset errors."""
    breakdown = ErrorBreakdown()
    buckets = {
        ErrorCategory.TRANSIENT: breakdown.transient,
        ErrorCategory.PERMANENT: breakdown.permanent,
        ErrorCategory.UNKNOWN: breakdown.unknown,
    }
    for error in errors:
        categorized = classify(error.message, error.asset_id)
        buckets[categorized.category].append(categorized)
    return breakdown
