"""Cache bookkeeping entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class CacheEntry:
    """Stored value plus its lifetime bookkeeping (times in ms)."""

    key: str
    value: Any
    created_at: float
    ttl_millis: float
    access_count: int = 0
    last_accessed: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def is_expired(self, now: float) -> bool:
        return now - self.created_at > self.ttl_millis


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of cache counters."""

    size: int
    max_size: int
    hit_rate: float
    hits: int
    misses: int
    sets: int
    deletes: int
    evictions: int
    expirations: int
    sweeps: int
