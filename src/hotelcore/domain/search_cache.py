"""Process-local search result cache.

TTL + LRU, keyed by a SHA-256 of the canonical JSON of (filters, query).
There is no cross-instance invalidation: with several processes a result
may be stale for up to the TTL. Local catalogue writes clear the cache.
"""

from __future__ import annotations

import hashlib
import json
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable

from hotelcore.config import get_settings


def cache_key(filters: dict, query: str | None) -> str:
    """Stable key: equal filters give equal keys regardless of dict order."""
    canonical = json.dumps(
        {"filters": filters, "query": query},
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    evictions: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


@dataclass
class _Entry:
    value: Any
    expires_at: float


@dataclass
class SearchCache:
    """Thread-safe TTL cache with LRU eviction.

    clock returns monotonic seconds; tests inject their own.
    """

    ttl_seconds: float = 300
    max_entries: int = 1024
    clock: Callable[[], float] = time.monotonic
    stats: CacheStats = field(default_factory=CacheStats)

    def __post_init__(self) -> None:
        self._entries: OrderedDict[str, _Entry] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        """Cached value, or None on miss or expiry."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.stats.misses += 1
                return None
            if entry.expires_at <= self.clock():
                del self._entries[key]
                self.stats.misses += 1
                return None
            self._entries.move_to_end(key)
            self.stats.hits += 1
            return entry.value

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_entries:
                self._entries.popitem(last=False)
                self.stats.evictions += 1
            self._entries[key] = _Entry(value=value, expires_at=self.clock() + self.ttl_seconds)
            self._entries.move_to_end(key)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


_cache: SearchCache | None = None
_cache_lock = threading.Lock()


def get_search_cache() -> SearchCache:
    """Process-wide cache, sized from settings on first use."""
    global _cache
    if _cache is None:
        with _cache_lock:
            if _cache is None:
                settings = get_settings()
                _cache = SearchCache(
                    ttl_seconds=settings.search_cache_ttl_seconds,
                    max_entries=settings.search_cache_max_entries,
                )
    return _cache


def reset_search_cache() -> None:
    """Drop the process-wide cache (tests, settings reload)."""
    global _cache
    with _cache_lock:
        _cache = None
