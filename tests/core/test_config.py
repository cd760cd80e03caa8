"""Tests for core configuration classes."""

from __future__ import annotations

from pathlib import Path

import pytest

from assetsync.core.config import RateLimitConfig, Settings, WorkerConfig


class TestRateLimitConfig:
    """Tests for RateLimitConfig class."""

    def test_defaults(self) -> None:
        """Should default to 10 requests per second with a burst of 20."""
        config = RateLimitConfig()
        assert config.requests_per_second == 10.0
        assert config.burst_capacity == 20

    def test_rejects_non_positive_rate(self) -> None:
        """Should reject a zero refill rate."""
        with pytest.raises(ValueError, match="requests_per_second"):
            RateLimitConfig(requests_per_second=0)

    def test_rejects_non_positive_burst(self) -> None:
        """Should reject a negative burst capacity."""
        with pytest.raises(ValueError, match="burst_capacity"):
            RateLimitConfig(burst_capacity=-1)

    def test_from_env(self) -> None:
        """Should read the DAM rate limit variables."""
        config = RateLimitConfig.from_env(
            {"ASSETSYNC_DAM_RATE_LIMIT_RPS": "2.5", "ASSETSYNC_DAM_RATE_LIMIT_BURST": "4"}
        )
        assert config.requests_per_second == 2.5
        assert config.burst_capacity == 4

    def test_from_env_invalid_number(self) -> None:
        """Should name the variable when a value does not parse."""
        with pytest.raises(ValueError, match="ASSETSYNC_DAM_RATE_LIMIT_BURST"):
            RateLimitConfig.from_env({"ASSETSYNC_DAM_RATE_LIMIT_BURST": "lots"})


class TestWorkerConfig:
    """Tests for WorkerConfig class."""

    def test_defaults(self) -> None:
        """Should poll every 5s and reclaim after 5 minutes."""
        config = WorkerConfig()
        assert config.poll_interval == 5.0
        assert config.stale_after == 300.0
        assert config.auto_retry is True
        assert config.auto_retry_delay == 5.0

    def test_from_env(self) -> None:
        """Should read worker variables, ignoring blanks."""
        config = WorkerConfig.from_env(
            {
                "ASSETSYNC_POLL_INTERVAL": "1",
                "ASSETSYNC_STALE_AFTER": "",
                "ASSETSYNC_AUTO_RETRY": "false",
                "ASSETSYNC_AUTO_RETRY_DELAY": "0.5",
            }
        )
        assert config.poll_interval == 1.0
        assert config.stale_after == 300.0
        assert config.auto_retry is False
        assert config.auto_retry_delay == 0.5


class TestSettings:
    """Tests for Settings class."""

    def test_from_empty_env(self) -> None:
        """Should fall back to defaults for every value."""
        settings = Settings.from_env({})
        assert settings.db_path == Path("assetsync.db")
        assert settings.log_path == Path("assetsync.log")
        assert settings.http_timeout == 30.0
        assert settings.rate_limit == RateLimitConfig()
        assert settings.worker == WorkerConfig()

    def test_from_env_paths(self, tmp_path: Path) -> None:
        """Should read database and log paths."""
        settings = Settings.from_env(
            {
                "ASSETSYNC_DB_PATH": str(tmp_path / "x.db"),
                "ASSETSYNC_LOG_PATH": str(tmp_path / "x.log"),
                "ASSETSYNC_HTTP_TIMEOUT": "12",
            }
        )
        assert settings.db_path == tmp_path / "x.db"
        assert settings.log_path == tmp_path / "x.log"
        assert settings.http_timeout == 12.0
