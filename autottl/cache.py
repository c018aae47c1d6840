"""
In-memory caches for auto-ttl

Two keyed stores, both owned by the engine instance:
- PatternCache: feed_id -> UpdatePattern, expires after 1 hour
- TTLCache: feed_id -> CachedTTL, expires after 5 minutes

Thread Safety:
- Each cache guards its dictionary with one lock held only for the
  read or the slot replacement. Computation happens outside the lock, so
  concurrent misses for the same feed may both recompute; the last writer
  replaces the slot wholesale.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .pattern import UpdatePattern

PATTERN_CACHE_EXPIRY_SECONDS = 3600
TTL_CACHE_EXPIRY_SECONDS = 300


@dataclass(frozen=True)
class CachedTTL:
    """One computed TTL for a feed."""
    feed_id: int
    ttl: int
    computed_at: int

    def is_fresh(self, now: int, expiry_seconds: int = TTL_CACHE_EXPIRY_SECONDS) -> bool:
        return (now - self.computed_at) < expiry_seconds


class PatternCache:
    """
    Cache of update patterns keyed by feed.

    Unbounded in feed count; entries leave only through invalidate() or
    clear().
    """

    def __init__(self, expiry_seconds: int = PATTERN_CACHE_EXPIRY_SECONDS):
        self.expiry_seconds = expiry_seconds
        self._lock = threading.Lock()
        self._patterns: Dict[int, UpdatePattern] = {}

    def get(self, feed_id: int, now: int = None) -> Optional[UpdatePattern]:
        """Return the cached pattern if it is still fresh at `now`."""
        now = int(time.time()) if now is None else now
        with self._lock:
            pattern = self._patterns.get(feed_id)
        if pattern is None:
            return None
        if (now - pattern.last_analysis_time) < self.expiry_seconds:
            return pattern
        return None

    def put(self, feed_id: int, pattern: UpdatePattern) -> None:
        with self._lock:
            self._patterns[feed_id] = pattern

    def get_or_load(
        self,
        feed_id: int,
        loader: Callable[[], UpdatePattern],
        now: int = None
    ) -> UpdatePattern:
        """
        Return the fresh cached pattern, or run `loader` and cache its result.

        Exceptions from the loader propagate and leave the cache untouched.
        """
        pattern = self.get(feed_id, now)
        if pattern is not None:
            return pattern

        pattern = loader()
        self.put(feed_id, pattern)
        return pattern

    def invalidate(self, feed_id: int) -> bool:
        """Remove a feed's pattern. Returns True if one was cached."""
        with self._lock:
            return self._patterns.pop(feed_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._patterns.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._patterns)

    def __contains__(self, feed_id: int) -> bool:
        with self._lock:
            return feed_id in self._patterns


class TTLCache:
    """
    Cache of the last computed TTL per feed.

    Expired entries are kept: the smoother blends against the previous
    value even when it is no longer fresh enough to be returned directly.
    """

    def __init__(self, expiry_seconds: int = TTL_CACHE_EXPIRY_SECONDS):
        self.expiry_seconds = expiry_seconds
        self._lock = threading.Lock()
        self._entries: Dict[int, CachedTTL] = {}

    def get_previous(self, feed_id: int) -> Optional[CachedTTL]:
        """Return the last stored entry for a feed, fresh or not."""
        with self._lock:
            return self._entries.get(feed_id)

    def get_fresh(self, feed_id: int, now: int) -> Optional[int]:
        """Return the cached TTL if it was computed less than expiry ago."""
        entry = self.get_previous(feed_id)
        if entry is not None and entry.is_fresh(now, self.expiry_seconds):
            return entry.ttl
        return None

    def store(self, feed_id: int, ttl: int, now: int) -> CachedTTL:
        entry = CachedTTL(feed_id=feed_id, ttl=ttl, computed_at=now)
        with self._lock:
            self._entries[feed_id] = entry
        return entry

    def invalidate(self, feed_id: int) -> bool:
        """Remove a feed's TTL. Returns True if one was cached."""
        with self._lock:
            return self._entries.pop(feed_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, feed_id: int) -> bool:
        with self._lock:
            return feed_id in self._entries
