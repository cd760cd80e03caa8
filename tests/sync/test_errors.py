"""Tests for failure classification."""

from __future__ import annotations

import pytest

from assetsync.clients.errors import NetworkError
from assetsync.core.types import AssetError, ErrorCategory
from assetsync.sync.errors import classify, classify_batch, is_retryable


class TestClassify:
    """Tests for classify()."""

    @pytest.mark.parametrize(
        "message",
        [
            "HTTP 503 Service Unavailable",
            "Request timeout: GET https://dam.test/api/v4/media/",
            "Rate limit exceeded",
            "HTTP 429 Too Many Requests",
            "read ECONNRESET",
            "Network connection error: GET https://dam.test",
            "HTTP 502 Bad Gateway",
            "Please retry later",
        ],
    )
    def test_transient(self, message: str) -> None:
        """Should classify overload and network failures as transient."""
        result = classify(message, "A1")
        assert result.category == ErrorCategory.TRANSIENT
        assert result.retryable is True
        assert result.asset_id == "A1"
        assert result.message == message

    @pytest.mark.parametrize(
        "message",
        [
            "Asset A1 not found in DAM",
            "HTTP 404 Not Found",
            "HTTP 401 Unauthorized",
            "HTTP 403 Forbidden",
            "Invalid file format",
            "Unsupported media type",
            "Expired token",
            "File is corrupt",
        ],
    )
    def test_permanent(self, message: str) -> None:
        """Should classify client and content errors as permanent."""
        result = classify(message)
        assert result.category == ErrorCategory.PERMANENT
        assert result.retryable is False

    def test_unknown_is_not_retryable(self) -> None:
        """Should never guess retryability for unrecognised messages."""
        result = classify("something odd happened")
        assert result.category == ErrorCategory.UNKNOWN
        assert result.retryable is False

    def test_empty_message(self) -> None:
        """Should classify an empty message as unknown."""
        assert classify("").category == ErrorCategory.UNKNOWN

    def test_transient_wins_over_permanent(self) -> None:
        """Should check transient patterns first."""
        assert classify("HTTP 504 Gateway Timeout: upstream not found").retryable is True

    def test_case_insensitive(self) -> None:
        """Should match regardless of case."""
        assert classify("SERVICE UNAVAILABLE").category == ErrorCategory.TRANSIENT

    def test_accepts_exceptions(self) -> None:
        """Should classify an exception by its message."""
        assert is_retryable(NetworkError("Request timeout: GET /x")) is True
        assert is_retryable(ValueError("bad request body")) is False


class TestClassifyBatch:
    """Tests for classify_batch()."""

    def test_partitions_in_order(self) -> None:
        """Should split errors into categories, keeping input order."""
        breakdown = classify_batch(
            [
                AssetError("A1", "HTTP 503 Service Unavailable"),
                AssetError("A2", "Asset A2 not found in DAM"),
                AssetError("A3", "mystery"),
                AssetError("A4", "Request timeout"),
            ]
        )

        assert [e.asset_id for e in breakdown.transient] == ["A1", "A4"]
        assert [e.asset_id for e in breakdown.permanent] == ["A2"]
        assert [e.asset_id for e in breakdown.unknown] == ["A3"]
        assert breakdown.total == 4
        assert breakdown.retryable == 2
        assert breakdown.counts() == {
            "total": 4,
            "transient": 2,
            "permanent": 1,
            "unknown": 1,
            "retryable": 2,
        }

    def test_empty(self) -> None:
        """Should return an empty breakdown for no errors."""
        breakdown = classify_batch([])
        assert breakdown.total == 0
        assert breakdown.retryable == 0
