"""
Process-local TTL cache for the BFF.

Entries live in memory only and are evicted lazily: a read at or after an
entry's expiry is a miss and drops the entry. Reads and writes never
suspend, so the store is safe to share between asyncio tasks.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from shared.logging import get_logger

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """A cached value and the monotonic instant it stops being valid."""
    value: T
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class CacheStore:
    """Key/value store with per-entry time-to-live and explicit invalidation."""

    def __init__(self, default_ttl: float = 300.0, clock: Callable[[], float] = time.monotonic):
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry[Any]] = {}
        self._hits = 0
        self._misses = 0
        self.logger = get_logger("bff.cache_store")

    def get(self, key: str) -> Optional[Any]:
        """Return the live value for ``key`` or ``None``."""
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None

        if entry.is_expired(self._clock()):
            del self._entries[key]
            self._misses += 1
            self.logger.debug("Cache entry expired", key=key)
            return None

        self._hits += 1
        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> CacheEntry[Any]:
        """Store ``value``; every write resets the expiry to now + ttl."""
        cache_ttl = self.default_ttl if ttl is None else ttl
        if cache_ttl <= 0:
            raise ValueError("ttl must be positive")

        entry = CacheEntry(value=value, expires_at=self._clock() + cache_ttl)
        self._entries[key] = entry
        self.logger.debug("Cached value", key=key, ttl=cache_ttl)
        return entry

    def delete(self, key: str) -> bool:
        """Remove ``key``. Returns whether a live or stale entry was present."""
        return self._entries.pop(key, None) is not None

    def contains(self, key: str) -> bool:
        """Check for a live entry without touching hit statistics."""
        entry = self._entries.get(key)
        return entry is not None and not entry.is_expired(self._clock())

    def purge_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        lookups = self._hits + self._misses
        return {
            "entries": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "hit_ratio": self._hits / lookups if lookups else 0.0,
        }
