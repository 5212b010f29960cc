"""Short-TTL cache for aggregate results, keyed on (query, city set)."""

from __future__ import annotations

import time
from typing import Callable, Dict, Generic, Iterable, Optional, Tuple, TypeVar

T = TypeVar("T")

CacheKey = Tuple[str, Tuple[str, ...]]


def cache_key(query: str, cities: Iterable[str]) -> CacheKey:
    return (" ".join((query or "").lower().split()), tuple(sorted(set(cities))))


class ResultCache(Generic[T]):
    """Plain dict with expiry times. No lock: callers share one event loop."""

    def __init__(self, ttl: float = 120, max_entries: int = 256, timer: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.max_entries = max_entries
        self._timer = timer
        self._entries: Dict[CacheKey, Tuple[float, T]] = {}
        self._stats = {"hits": 0, "misses": 0, "evictions": 0}

    def get(self, key: CacheKey) -> Optional[T]:
        entry = self._entries.get(key)
        if not entry:
            self._stats["misses"] += 1
            return None
        expires_at, value = entry
        if expires_at <= self._timer():
            self._entries.pop(key, None)
            self._stats["misses"] += 1
            return None
        self._stats["hits"] += 1
        return value

    def set(self, key: CacheKey, value: T) -> None:
        if self.ttl <= 0:
            return
        if key not in self._entries and len(self._entries) >= self.max_entries:
            oldest_key = min(self._entries.items(), key=lambda item: item[1][0])[0]
            self._entries.pop(oldest_key, None)
            self._stats["evictions"] += 1
        self._entries[key] = (self._timer() + self.ttl, value)

    def clear(self) -> None:
        self._entries.clear()
        for name in self._stats:
            self._stats[name] = 0

    def stats(self) -> Dict[str, int]:
        return dict(self._stats, size=len(self._entries))
