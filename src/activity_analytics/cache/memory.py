"""Process-local TTL cache."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import date
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def now_millis() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class CacheKey:
    """Identifies one analytics result: namespace, user and calendar day."""

    namespace: str  # "time" | "keywords"
    user_id: str
    day: date

    def __str__(self) -> str:
        return f"{self.namespace}:{self.user_id}:{self.day.isoformat()}"


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    payload: T
    cached_at_millis: int
    page_count: int | None = None

    def is_valid(self, ttl_millis: int, now: int) -> bool:
        return (now - self.cached_at_millis) < ttl_millis


class InProcessCache(Generic[T]):
    """Thread-safe map of :class:`CacheKey` to :class:`CacheEntry`.

    Entries are only ever replaced whole, so readers never observe a
    partially updated entry.
    """

    def __init__(self, ttl_seconds: int, clock: Callable[[], int] = now_millis):
        self.ttl_millis = ttl_seconds * 1000
        self._clock = clock
        self._entries: dict[CacheKey, CacheEntry[T]] = {}
        self._lock = threading.Lock()

    def get(self, key: CacheKey) -> CacheEntry[T] | None:
        """Return the entry for ``key`` if present and still within TTL."""
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.is_valid(self.ttl_millis, self._clock()):
            return None
        return entry

    def put(self, key: CacheKey, entry: CacheEntry[T]) -> None:
        with self._lock:
            self._entries[key] = entry

    def invalidate(self, key: CacheKey) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def sweep(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [
                key
                for key, entry in self._entries.items()
                if not entry.is_valid(self.ttl_millis, now)
            ]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("Swept %d expired cache entries", len(expired))
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        return self.get(key) is not None
