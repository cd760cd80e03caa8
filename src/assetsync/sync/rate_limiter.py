"""Token bucket rate limiter for outbound DAM API calls.

One instance is built per process and handed to every DAM client, so all
callers share the same bucket. State (tokens, last refill, hit counter) is
guarded by a lock; the caller sleeps outside the lock.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from assetsync.core.config import RateLimitConfig

logger = logging.getLogger(__name__)


class RateLimiter:
    """Token bucket governor.

    Usage:
        limiter = RateLimiter(requests_per_second=10, burst_capacity=20)
        limiter.acquire()  # blocks until a token is granted
    """

    def __init__(
        self,
        requests_per_second: float,
        burst_capacity: int,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the limiter with a full bucket.

        Args:
            requests_per_second: Refill rate in tokens per second.
            burst_capacity: Bucket size and initial token count.
            clock: Monotonic clock in seconds.
            sleep: Blocking sleep function.
        """
        if requests_per_second <= 0:
            raise ValueError("requests_per_second must be positive")
        if burst_capacity <= 0:
            raise ValueError("burst_capacity must be positive")

        self._rate = float(requests_per_second)
        self._capacity = float(burst_capacity)
        self._tokens = float(burst_capacity)
        self._clock = clock
        self._sleep = sleep
        self._last_refill = clock()
        self._rate_limit_hits = 0
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: RateLimitConfig) -> RateLimiter:
        """Build a limiter from RateLimitConfig."""
        return cls(config.requests_per_second, config.burst_capacity)

    @property
    def requests_per_second(self) -> float:
        """Refill rate."""
        return self._rate

    @property
    def burst_capacity(self) -> int:
        """Bucket size."""
        return int(self._capacity)

    @property
    def available_tokens(self) -> int:
        """Whole tokens currently available."""
        with self._lock:
            self._refill()
            return math.floor(self._tokens)

    @property
    def rate_limit_hits(self) -> int:
        """Number of acquire() calls that had to wait."""
        with self._lock:
            return self._rate_limit_hits

    def reset_rate_limit_hits(self) -> None:
        """Reset the hit counter."""
        with self._lock:
            self._rate_limit_hits = 0

    def acquire(self) -> bool:
        """Take one token, waiting for a refill if the bucket is empty.

        Never fails.

        Returns:
            Always True once the token is granted.
        """
        waited = False
        while True:
            with self._lock:
                self._refill()
                if self._tokens >= 1:
                    self._tokens -= 1
                    return True
                if not waited:
                    self._rate_limit_hits += 1
                    waited = True
                wait = self._wait_time()

            logger.debug("Rate limited, waiting %.3fs for a token", wait)
            self._sleep(wait)

    def _refill(self) -> None:
        """Add tokens for elapsed time. Caller holds the lock."""
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)
        self._tokens = min(self._capacity, self._tokens + elapsed * self._rate)
        self._last_refill = now

    def _wait_time(self) -> float:
        """Seconds until one token is available, rounded up to the millisecond."""
        tokens_needed = 1 - self._tokens
        return math.ceil(tokens_needed / self._rate * 1000) / 1000
