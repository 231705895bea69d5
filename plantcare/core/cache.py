"""In-process TTL cache and provider backoff registry.

Both are shared between request handlers and worker threads, so every
read-modify-write happens under a lock. Lost updates are acceptable (the worst
case is one redundant provider call); torn entries are not.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Generic, Hashable, Optional, TypeVar

V = TypeVar("V")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """A cached value. ``value`` may be None for a cached negative result."""

    value: Optional[V]
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


class TTLCache(Generic[V]):
    """
    Dict-backed cache where each entry carries its own expiry.

    ``get`` returns the entry (not the value) so callers can tell a miss
    (``None``) from a cached negative (``entry.value is None``).
    Expired entries are evicted on read and never returned.
    """

    def __init__(self, ttl: timedelta, *, clock: Clock = utc_now):
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[Hashable, CacheEntry[V]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[CacheEntry[V]]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(now):
                self._entries.pop(key, None)
                return None
            return entry

    def put(self, key: Hashable, value: Optional[V], ttl: Optional[timedelta] = None) -> CacheEntry[V]:
        entry = CacheEntry(value=value, expires_at=self._clock() + (ttl if ttl is not None else self.ttl))
        with self._lock:
            self._entries[key] = entry
        return entry

    def clear(self) -> int:
        """Drop everything; returns how many entries were removed."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class BackoffRegistry:
    """Per-provider ``backoff_until`` timestamps."""

    def __init__(self, *, clock: Clock = utc_now):
        self._clock = clock
        self._until: Dict[str, datetime] = {}
        self._lock = threading.Lock()

    def is_available(self, provider: str) -> bool:
        with self._lock:
            until = self._until.get(provider)
        return until is None or until <= self._clock()

    def mark_failure(self, provider: str, duration: timedelta) -> datetime:
        until = self._clock() + duration
        with self._lock:
            self._until[provider] = until
        return until

    def backoff_until(self, provider: str) -> Optional[datetime]:
        with self._lock:
            return self._until.get(provider)

    def reset(self, provider: Optional[str] = None) -> int:
        with self._lock:
            if provider is None:
                count = len(self._until)
                self._until.clear()
                return count
            return 1 if self._until.pop(provider, None) is not None else 0
