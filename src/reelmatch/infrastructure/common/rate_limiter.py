"""Per-host token-bucket pacing for outgoing metadata and provider calls.

Jikan allows three requests per second; provider APIs publish their own
limits. A bucket per host keeps one slow API from throttling the others.
The optional AIMD mode halves the rate on 429/503 and grows it by 10% on
success, bounded by ``min_rate``/``max_rate``.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from urllib.parse import urlparse

import structlog

log = structlog.get_logger(__name__)


class TokenBucket:
    """Token bucket refilled at *rate* tokens per second up to *burst*.

    Args:
        rate: Tokens per second. ``0`` disables pacing.
        burst: Bucket capacity.
        adaptive: Adjust the rate from :meth:`record_success` and
            :meth:`record_throttle` feedback.
        min_rate: Floor for the adaptive rate.
        max_rate: Ceiling for the adaptive rate.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        rate: float,
        burst: int = 1,
        *,
        adaptive: bool = False,
        min_rate: float = 0.5,
        max_rate: float = 50.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._rate = rate
        self._burst = burst
        self._tokens = float(burst)
        self._clock = clock
        self._last_refill = clock()
        self._lock = asyncio.Lock()
        self._adaptive = adaptive
        self._min_rate = min_rate
        self._max_rate = max_rate

    @property
    def rate(self) -> float:
        return self._rate

    async def acquire(self) -> None:
        """Wait for a token and consume it."""
        if self._rate <= 0:
            return

        async with self._lock:
            self._refill()
            while self._tokens < 1.0:
                await asyncio.sleep((1.0 - self._tokens) / self._rate)
                self._refill()
            self._tokens -= 1.0

    def _refill(self) -> None:
        now = self._clock()
        self._tokens = min(self._burst, self._tokens + (now - self._last_refill) * self._rate)
        self._last_refill = now

    def record_success(self) -> None:
        if self._adaptive:
            self._rate = min(self._max_rate, self._rate * 1.1)

    def record_throttle(self) -> None:
        if not self._adaptive:
            return
        old = self._rate
        self._rate = max(self._min_rate, self._rate * 0.5)
        log.debug("rate_limit_throttle", old_rps=round(old, 2), new_rps=round(self._rate, 2))


class HostRateLimiter:
    """One :class:`TokenBucket` per host name.

    Args:
        default_rps: Rate for hosts without an explicit entry. ``0`` means
            unlimited.
        burst: Bucket capacity.
        per_host: Rate overrides keyed by host name (``api.jikan.moe``).
        adaptive: Enable AIMD adjustment on every bucket. A bucket never
            grows past the rate it was configured with.
    """

    def __init__(
        self,
        default_rps: float = 0.0,
        burst: int = 1,
        *,
        per_host: dict[str, float] | None = None,
        adaptive: bool = False,
    ) -> None:
        self._default_rps = default_rps
        self._burst = burst
        self._per_host = dict(per_host or {})
        self._adaptive = adaptive
        self._buckets: dict[str, TokenBucket] = {}

    @staticmethod
    def _host(url: str) -> str:
        return (urlparse(url).hostname or "").lower()

    def _bucket(self, host: str) -> TokenBucket | None:
        rate = self._per_host.get(host, self._default_rps)
        if rate <= 0:
            return None
        if host not in self._buckets:
            self._buckets[host] = TokenBucket(
                rate, self._burst, adaptive=self._adaptive, max_rate=rate
            )
        return self._buckets[host]

    async def acquire(self, url: str) -> None:
        """Wait for clearance to call *url*."""
        host = self._host(url)
        if not host:
            return
        bucket = self._bucket(host)
        if bucket is not None:
            await bucket.acquire()

    def record_success(self, url: str) -> None:
        bucket = self._buckets.get(self._host(url))
        if bucket is not None:
            bucket.record_success()

    def record_throttle(self, url: str) -> None:
        bucket = self._buckets.get(self._host(url))
        if bucket is not None:
            bucket.record_throttle()
