"""
Content cache management.

In-process TTL cache for fetched text, keyed by caller-namespaced strings.
"""

import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Optional

from shared.logging import get_logger

log = get_logger("acquirer", "cache")


@dataclass(frozen=True)
class CacheEntry:
    """A cached piece of text and when it was stored."""
    content: str
    stored_at: float


class ContentCache:
    """
    Key -> text store with lazy TTL expiry.

    Features:
    - Entries older than the TTL are evicted when read
    - Hit/miss/eviction counters
    - Injectable clock for deterministic expiry

    Keys are opaque; fetchers prefix them ("page:", "transcript:") so
    different fetcher kinds never collide on the same URL.
    """

    def __init__(self, ttl_minutes: float = 60, clock: Callable[[], float] = time.monotonic):
        """
        Initialize cache.

        Args:
            ttl_minutes: Lifetime of an entry
            clock: Monotonic time source in seconds
        """
        self.ttl_seconds = float(ttl_minutes) * 60
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    @classmethod
    def from_config(cls, config: Optional[dict]) -> "ContentCache":
        """Build a cache from the `cache` config section."""
        config = config or {}
        return cls(ttl_minutes=config.get("ttl_minutes", 60))

    def get(self, key: str) -> Optional[str]:
        """
        Get cached text for key.

        Args:
            key: Cache key

        Returns:
            Cached text, or None if absent or expired
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None

            if self._clock() - entry.stored_at > self.ttl_seconds:
                del self._entries[key]
                self.evictions += 1
                self.misses += 1
                log.debug("cache.expired", key=key[:80])
                return None

            self.hits += 1
            return entry.content

    def set(self, key: str, content: str) -> None:
        """Store text under key, replacing any previous entry."""
        with self._lock:
            self._entries[key] = CacheEntry(content=content, stored_at=self._clock())
        log.debug("cache.set", key=key[:80], chars=len(content))

    def delete(self, key: str) -> bool:
        """Remove key from cache."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def stats(self) -> dict:
        """Get cache statistics."""
        return {
            "entry_count": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "ttl_seconds": self.ttl_seconds,
        }
