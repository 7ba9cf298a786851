"""Cache Port - interface for the in-process expiring cache."""

from __future__ import annotations

from typing import Any, Protocol

from reelmatch.domain.entities.cache import CacheEntry, CacheStats


class CachePort(Protocol):
    """Port for a key-value cache with per-entry TTL.

    Operations are synchronous: the cache lives in process memory and is
    also used from executor threads by the parsers.

    Implementations:
      - TtlCache (bounded dict with periodic sweep)
    """

    def get(self, key: str, default: Any = None) -> Any:
        """Retrieve value. *default* = not found / expired."""
        ...

    def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: float | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Set value with optional TTL (seconds)."""
        ...

    def has(self, key: str) -> bool:
        """Check if key exists (not expired)."""
        ...

    def delete(self, key: str) -> bool:
        """Delete key. True = deleted, False = did not exist."""
        ...

    def clear(self) -> None:
        """Delete ALL keys and reset counters."""
        ...

    def get_by_pattern(self, pattern: str) -> list[CacheEntry]:
        """Return unexpired entries whose key matches the regex *pattern*."""
        ...

    def update_ttl(self, key: str, ttl_seconds: float) -> bool:
        """Restart the lifetime of *key* with a new TTL."""
        ...

    def stats(self) -> CacheStats:
        """Counter snapshot."""
        ...
