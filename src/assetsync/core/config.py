"""Configuration classes for assetsync.

Settings are plain dataclasses with defaults. ``from_env`` builds them from
``ASSETSYNC_*`` environment variables so the worker, the HTTP server and the
CLI resolve the same values.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

ENV_PREFIX = "ASSETSYNC_"


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from None


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from None


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class RateLimitConfig:
    """Token bucket settings for outbound DAM calls.

    Attributes:
        requests_per_second: Refill rate of the bucket.
        burst_capacity: Bucket size, also the initial token count.
    """

    requests_per_second: float = 10.0
    burst_capacity: int = 20

    def __post_init__(self) -> None:
        """Validate limits."""
        if self.requests_per_second <= 0:
            raise ValueError("requests_per_second must be positive")
        if self.burst_capacity <= 0:
            raise ValueError("burst_capacity must be positive")

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> RateLimitConfig:
        """Load from ASSETSYNC_DAM_RATE_LIMIT_RPS / ASSETSYNC_DAM_RATE_LIMIT_BURST."""
        env = os.environ if env is None else env
        return cls(
            requests_per_second=_env_float(env, "DAM_RATE_LIMIT_RPS", 10.0),
            burst_capacity=_env_int(env, "DAM_RATE_LIMIT_BURST", 20),
        )


@dataclass
class WorkerConfig:
    """Settings for the job worker loop and the orchestrator.

    Attributes:
        poll_interval: Seconds to sleep between idle poll cycles.
        stale_after: Seconds without progress after which a running job is
            considered abandoned and may be reclaimed.
        auto_retry: Whether transient failures get a second pass.
        auto_retry_delay: Seconds to wait before the automatic retry pass.
    """

    poll_interval: float = 5.0
    stale_after: float = 300.0
    auto_retry: bool = True
    auto_retry_delay: float = 5.0

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> WorkerConfig:
        """Load from ASSETSYNC_POLL_INTERVAL and friends."""
        env = os.environ if env is None else env
        return cls(
            poll_interval=_env_float(env, "POLL_INTERVAL", 5.0),
            stale_after=_env_float(env, "STALE_AFTER", 300.0),
            auto_retry=_env_bool(env, "AUTO_RETRY", True),
            auto_retry_delay=_env_float(env, "AUTO_RETRY_DELAY", 5.0),
        )


@dataclass
class Settings:
    """Top-level settings for an assetsync process."""

    db_path: Path = Path("assetsync.db")
    log_path: Path = Path("assetsync.log")
    http_timeout: float = 30.0
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    worker: WorkerConfig = field(default_factory=WorkerConfig)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        """Load every setting from the environment."""
        env = os.environ if env is None else env
        return cls(
            db_path=Path(env.get(ENV_PREFIX + "DB_PATH", "assetsync.db")),
            log_path=Path(env.get(ENV_PREFIX + "LOG_PATH", "assetsync.log")),
            http_timeout=_env_float(env, "HTTP_TIMEOUT", 30.0),
            rate_limit=RateLimitConfig.from_env(env),
            worker=WorkerConfig.from_env(env),
        )
