"""Bounded in-process cache with per-entry TTL and periodic sweep."""

from __future__ import annotations

import asyncio
import re
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

import structlog

from reelmatch.domain.entities.cache import CacheEntry, CacheStats

log = structlog.get_logger(__name__)


class TtlCache:
    """Memoization store shared by parsers, processors and metadata clients.

    Entries are kept in insertion order; re-setting a key or updating its
    TTL moves it to the end, so the first entry is always the oldest by
    timestamp and eviction is O(1).

    Implements ``CachePort``. Safe to call from executor threads.

    Args:
        max_size: Maximum number of entries before eviction.
        default_ttl_seconds: TTL used when ``set`` gets none.
        sweep_interval_seconds: Period of the background sweep task.
        clock: Monotonic time source in seconds (injectable for tests).
    """

    def __init__(
        self,
        max_size: int = 1000,
        default_ttl_seconds: float = 3600,
        sweep_interval_seconds: float = 300,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self._max_size = max_size
        self._default_ttl = default_ttl_seconds
        self._sweep_interval = sweep_interval_seconds
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.RLock()
        self._sweep_task: asyncio.Task[None] | None = None
        self._reset_counters()

    def _reset_counters(self) -> None:
        self._hits = 0
        self._misses = 0
        self._sets = 0
        self._deletes = 0
        self._evictions = 0
        self._expirations = 0
        self._sweeps = 0

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return default
            now = self._now_ms()
            if entry.is_expired(now):
                del self._entries[key]
                self._expirations += 1
                self._misses += 1
                return default
            entry.access_count += 1
            entry.last_accessed = now
            self._hits += 1
            return entry.value

    def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: float | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self._max_size:
                self._evict_oldest()
            self._entries[key] = CacheEntry(
                key=key,
                value=value,
                created_at=self._now_ms(),
                ttl_millis=ttl * 1000.0,
                metadata=dict(metadata or {}),
            )
            self._sets += 1

    def _evict_oldest(self) -> None:
        oldest_key, _ = self._entries.popitem(last=False)
        self._evictions += 1
        log.debug("cache_evicted", key=oldest_key)

    def has(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if entry.is_expired(self._now_ms()):
                del self._entries[key]
                self._expirations += 1
                return False
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            if self._entries.pop(key, None) is None:
                return False
            self._deletes += 1
            return True

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._reset_counters()

    def get_by_pattern(self, pattern: str) -> list[CacheEntry]:
        regex = re.compile(pattern)
        with self._lock:
            now = self._now_ms()
            return [
                entry
                for key, entry in self._entries.items()
                if regex.search(key) and not entry.is_expired(now)
            ]

    def update_ttl(self, key: str, ttl_seconds: float) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            entry.ttl_millis = ttl_seconds * 1000.0
            entry.created_at = self._now_ms()
            self._entries.move_to_end(key)
            return True

    def sweep(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        with self._lock:
            now = self._now_ms()
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
            self._expirations += len(expired)
            self._sweeps += 1
        if expired:
            log.debug("cache_swept", removed=len(expired), size=len(self))
        return len(expired)

    def stats(self) -> CacheStats:
        with self._lock:
            lookups = self._hits + self._misses
            hit_rate = round(self._hits / lookups, 2) if lookups else 0.0
            return CacheStats(
                size=len(self._entries),
                max_size=self._max_size,
                hit_rate=hit_rate,
                hits=self._hits,
                misses=self._misses,
                sets=self._sets,
                deletes=self._deletes,
                evictions=self._evictions,
                expirations=self._expirations,
                sweeps=self._sweeps,
            )

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Background sweep lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self._sweep_task is not None and not self._sweep_task.done():
            return
        self._sweep_task = asyncio.get_running_loop().create_task(self._sweep_loop())
        log.debug("cache_sweeper_started", interval=self._sweep_interval)

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            self.sweep()

    async def aclose(self) -> None:
        """Stop the sweep task. Entries stay readable."""
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def __aenter__(self) -> TtlCache:
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
