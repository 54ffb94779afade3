"""Expiring in-memory cache for point-in-time lookups."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[T]):
    value: T
    stored_at: float
    ttl: float

    def is_valid(self, now: float) -> bool:
        return now < self.stored_at + self.ttl


class ExpiringCache:
    """Key -> value store where every entry carries its own TTL.

    Expiry is lazy: an expired entry reads as absent but stays in memory until
    it is overwritten, invalidated or purge_expired() runs. Fine for a bounded
    symbol universe; callers with unbounded keys (free-text search) should
    purge periodically.

    Writers: QuoteFetcher (pull path) and SubscriptionHub (push path).
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: dict[str, CacheEntry[Any]] = {}
        self._clock = clock
        self._lock = Lock()

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Store value under key, replacing whatever was there."""
        with self._lock:
            self._entries[key] = CacheEntry(value=value, stored_at=self._clock(), ttl=float(ttl_seconds))

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if missing or expired."""
        entry = self.entry(key)
        return entry.value if entry else None

    def entry(self, key: str) -> CacheEntry[Any] | None:
        """Return the live entry (with its metadata), or None."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or not entry.is_valid(self._clock()):
                return None
            return entry

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if not e.is_valid(now)]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def __len__(self) -> int:
        # Counts stored entries, expired or not
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.entry(key) is not None
