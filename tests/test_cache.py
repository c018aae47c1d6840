"""
Tests for the pattern cache and TTL cache.
"""

import threading

import pytest

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from autottl.cache import (
    CachedTTL,
    PatternCache,
    TTLCache,
    PATTERN_CACHE_EXPIRY_SECONDS,
    TTL_CACHE_EXPIRY_SECONDS,
)
from autottl.pattern import UpdatePattern

ANALYZED_AT = 1704096000


def pattern_at(ts, total=0):
    return UpdatePattern(total_entries=total, last_analysis_time=ts)


class TestPatternCache:

    def test_expiry_constant(self):
        assert PATTERN_CACHE_EXPIRY_SECONDS == 3600

    def test_fresh_within_hour(self):
        cache = PatternCache()
        pattern = pattern_at(ANALYZED_AT)
        cache.put(7, pattern)
        assert cache.get(7, now=ANALYZED_AT + 3599) is pattern

    def test_expired_after_hour(self):
        cache = PatternCache()
        cache.put(7, pattern_at(ANALYZED_AT))
        assert cache.get(7, now=ANALYZED_AT + 3600) is None
        # Expired entries are replaced, not evicted, on read
        assert 7 in cache

    def test_missing(self):
        assert PatternCache().get(1, now=ANALYZED_AT) is None

    def test_get_or_load_uses_cache(self):
        cache = PatternCache()
        calls = []

        def loader():
            calls.append(1)
            return pattern_at(ANALYZED_AT, total=len(calls))

        first = cache.get_or_load(3, loader, now=ANALYZED_AT)
        second = cache.get_or_load(3, loader, now=ANALYZED_AT + 60)
        assert first is second
        assert len(calls) == 1

    def test_get_or_load_replaces_expired(self):
        cache = PatternCache()
        cache.put(3, pattern_at(ANALYZED_AT, total=1))
        fresh = cache.get_or_load(
            3, lambda: pattern_at(ANALYZED_AT + 4000, total=2), now=ANALYZED_AT + 4000
        )
        assert fresh.total_entries == 2
        assert cache.get(3, now=ANALYZED_AT + 4000) is fresh

    def test_loader_error_leaves_cache(self):
        cache = PatternCache()
        old = pattern_at(ANALYZED_AT)
        cache.put(3, old)

        def failing_loader():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            cache.get_or_load(3, failing_loader, now=ANALYZED_AT + 7200)
        assert cache.get(3, now=ANALYZED_AT) is old

    def test_invalidate(self):
        cache = PatternCache()
        cache.put(5, pattern_at(ANALYZED_AT))
        assert cache.invalidate(5) is True
        assert cache.invalidate(5) is False
        assert len(cache) == 0

    def test_clear(self):
        cache = PatternCache()
        cache.put(1, pattern_at(ANALYZED_AT))
        cache.put(2, pattern_at(ANALYZED_AT))
        cache.clear()
        assert len(cache) == 0


class TestTTLCache:

    def test_expiry_constant(self):
        assert TTL_CACHE_EXPIRY_SECONDS == 300

    def test_fresh_boundary(self):
        cache = TTLCache()
        cache.store(9, 3600, ANALYZED_AT)
        assert cache.get_fresh(9, ANALYZED_AT + 299) == 3600
        assert cache.get_fresh(9, ANALYZED_AT + 300) is None

    def test_previous_kept_after_expiry(self):
        cache = TTLCache()
        cache.store(9, 3600, ANALYZED_AT)
        previous = cache.get_previous(9)
        assert previous == CachedTTL(feed_id=9, ttl=3600, computed_at=ANALYZED_AT)
        assert not previous.is_fresh(ANALYZED_AT + 1000)

    def test_invalidate_missing_is_noop(self):
        cache = TTLCache()
        assert cache.invalidate(404) is False
        assert cache.get_previous(404) is None

    def test_concurrent_stores_never_tear(self):
        """Each slot is replaced wholesale under concurrent writers."""
        cache = TTLCache()

        def writer(offset):
            for i in range(200):
                value = offset * 1000 + i
                cache.store(1, value, value)
                cache.get_fresh(1, value)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        entry = cache.get_previous(1)
        assert entry.ttl == entry.computed_at
        assert len(cache) == 1
