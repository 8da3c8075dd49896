"""
In-memory response cache with lazy TTL expiry.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from shared.logging import get_logger


@dataclass(frozen=True)
class CacheEntry:
    """A cached payload and the moment it was captured."""

    key: str
    value: Any
    captured_at: float


class ResponseCache:
    """
    Process-wide ``key -> CacheEntry`` map.

    An entry is served only while ``now - captured_at < ttl``. Expired
    entries are dropped when a lookup finds them; there is no size bound and
    no background sweep. Entries are replaced wholesale, never mutated, so
    concurrent requests need no lock: the last store for a key wins.
    """

    def __init__(self, default_ttl: float = 300, clock: Optional[Callable[[], float]] = None):
        self.default_ttl = default_ttl
        self._clock = clock or time.monotonic
        self._entries: Dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self.logger = get_logger("weather.response_cache")

    def lookup(self, key: str, ttl: Optional[float] = None) -> Optional[Any]:
        """Return the cached value for ``key``, or None on a miss or expiry."""
        effective_ttl = ttl if ttl is not None else self.default_ttl
        entry = self._entries.get(key)

        if entry is not None:
            age = self._clock() - entry.captured_at
            if age < effective_ttl:
                self._hits += 1
                self.logger.debug("Cache hit", key=key, age_seconds=round(age, 3))
                return entry.value

            # Only evict the entry we inspected; a concurrent store may have replaced it
            if self._entries.get(key) is entry:
                del self._entries[key]
            self.logger.debug("Evicted expired cache entry", key=key, age_seconds=round(age, 3))

        self._misses += 1
        self.logger.debug("Cache miss", key=key)
        return None

    def store(self, key: str, value: Any) -> CacheEntry:
        """Insert or replace the entry for ``key`` stamped with the current time."""
        entry = CacheEntry(key=key, value=value, captured_at=self._clock())
        self._entries[key] = entry
        self.logger.debug("Stored cache entry", key=key)
        return entry

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()
        self.logger.debug("Cleared response cache")

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def stats(self) -> Dict[str, int]:
        """Entry count plus hit/miss counters since startup."""
        return {
            "entries": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
        }
