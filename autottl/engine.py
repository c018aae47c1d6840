"""
Dynamic TTL Engine

Computes the adaptive polling interval of a feed from its historical
update timing.

Control flow of get_dynamic_ttl:
    TTL cache hit (< 5 min old)  -> return cached TTL
    otherwise                    -> pattern (cached up to 1 hour, else analyzed
                                    from the history source)
                                 -> raw prediction for the current hour/weekday
                                 -> smoothed against the previous TTL (0.7 / 0.3)
                                 -> clamped to [default_ttl, max_ttl]
                                 -> stored in the TTL cache

No failure here is fatal to the host: when the history source fails, the
previous TTL or max_ttl is returned instead.

Usage:
    engine = AutoTTLEngine(database, config.snapshot(), plugin)

    ttl = engine.get_adjusted_ttl(feed_id)

    # After a fetch cycle or a settings edit
    engine.clear_cache(feed_id)
"""

import logging
import time
from datetime import tzinfo
from typing import Any, Callable, Dict, List, Tuple, Union, TYPE_CHECKING

from .cache import (
    PatternCache,
    TTLCache,
    PATTERN_CACHE_EXPIRY_SECONDS,
    TTL_CACHE_EXPIRY_SECONDS,
)
from .config import AutoTTLConfigSnapshot, TTLBounds
from .pattern import (
    PatternResult,
    UpdatePattern,
    analyze_timestamps,
    get_most_active_hours,
)
from .predictor import predict_ttl
from .temporal import is_known_timezone, resolve_timezone

if TYPE_CHECKING:
    from .database import FeedDatabase

logger = logging.getLogger("autottl.engine")

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

# Smoothing weights: new = previous * 0.7 + raw * 0.3
SMOOTHING_PREVIOUS_WEIGHT = 0.7
SMOOTHING_RAW_WEIGHT = 0.3


class AutoTTLError(Exception):
    """Base class for auto-ttl errors."""
    pass


class HistoryUnavailableError(AutoTTLError):
    """Raised when the history source cannot return a feed's timestamps."""

    def __init__(self, feed_id: int, reason: str):
        super().__init__(f"History unavailable for feed {feed_id}: {reason}")
        self.feed_id = feed_id
        self.reason = reason


def smooth_ttl(previous: int, raw: int) -> int:
    """Blend a new raw TTL with the previous one."""
    return int(round(previous * SMOOTHING_PREVIOUS_WEIGHT + raw * SMOOTHING_RAW_WEIGHT))


class AutoTTLEngine:
    """
    Adaptive TTL engine for polled feeds.

    Owns its pattern and TTL caches; nothing is shared through class-level
    state, so independent engines never see each other's entries.

    Collaborators:
    - database: anything with fetch_recent_timestamps(feed_id, cutoff)
      returning ascending unix timestamps
    - config: AutoTTLConfigSnapshot (bounds, lookback window, timezone)
    - timezone_provider: optional callable returning a timezone name or
      tzinfo; overrides config.timezone when it returns a value
    """

    def __init__(
        self,
        database: 'FeedDatabase',
        config: AutoTTLConfigSnapshot,
        plugin=None,
        timezone_provider: Callable[[], Union[str, tzinfo, None]] = None,
        pattern_cache: PatternCache = None,
        ttl_cache: TTLCache = None
    ):
        """
        Initialize the AutoTTLEngine.

        Args:
            database: History source for entry timestamps
            config: Immutable configuration snapshot
            plugin: Optional host object with log(message, level=...)
            timezone_provider: Optional callable resolving the display timezone
            pattern_cache: Pattern cache to use (default: new, 1 hour expiry)
            ttl_cache: TTL cache to use (default: new, 5 minute expiry)
        """
        self.database = database
        self.config = config
        self.bounds: TTLBounds = config.bounds
        self.plugin = plugin
        self.timezone_provider = timezone_provider

        if pattern_cache is None:
            pattern_cache = PatternCache(PATTERN_CACHE_EXPIRY_SECONDS)
        if ttl_cache is None:
            ttl_cache = TTLCache(TTL_CACHE_EXPIRY_SECONDS)
        self.pattern_cache = pattern_cache
        self.ttl_cache = ttl_cache

        if not self.bounds.is_consistent:
            self._log(
                f"default_ttl ({self.bounds.default_ttl}) > max_ttl ({self.bounds.max_ttl}), "
                f"every TTL will be {self.bounds.default_ttl}s",
                level="warn"
            )
        if not is_known_timezone(config.timezone):
            self._log(f"Unknown timezone {config.timezone!r}, using UTC", level="warn")

    def _log(self, message: str, level: str = "debug") -> None:
        """Log through the host plugin if available, else the module logger."""
        if self.plugin:
            self.plugin.log(f"AUTOTTL: {message}", level=level)
        else:
            logger.log(_LOG_LEVELS.get(level, logging.INFO), message)

    def _get_timezone(self) -> tzinfo:
        if self.timezone_provider is not None:
            try:
                provided = self.timezone_provider()
            except Exception as e:
                self._log(f"Timezone provider failed, using config: {e}", level="debug")
                provided = None
            if provided:
                return resolve_timezone(provided)
        return resolve_timezone(self.config.timezone)

    # =========================================================================
    # BOUNDS
    # =========================================================================

    def calc_adjusted_ttl(self, value: int) -> int:
        """
        Clamp a TTL candidate to the administrator bounds.

        Also used to normalize feed-level static TTL settings.
        """
        return self.bounds.clamp(value)

    # =========================================================================
    # PATTERN
    # =========================================================================

    def _load_pattern(self, feed_id: int, now: int) -> UpdatePattern:
        cutoff = now - self.config.lookback_seconds
        try:
            timestamps = self.database.fetch_recent_timestamps(feed_id, cutoff)
        except Exception as e:
            raise HistoryUnavailableError(feed_id, str(e)) from e

        pattern = analyze_timestamps(timestamps, self._get_timezone(), now=now)
        self._log(
            f"Analyzed feed {feed_id}: {pattern.total_entries} entries over "
            f"{pattern.days_covered} days (enough_data={pattern.has_enough_data})",
            level="debug"
        )
        return pattern

    def analyze_feed_pattern(self, feed_id: int, now: int = None) -> UpdatePattern:
        """
        Get the update pattern of a feed.

        Returns the cached pattern if it is less than an hour old, otherwise
        analyzes fresh history and replaces the cached entry.

        Raises:
            HistoryUnavailableError: the history source failed
        """
        now = int(time.time()) if now is None else int(now)
        return self.pattern_cache.get_or_load(
            feed_id,
            lambda: self._load_pattern(feed_id, now),
            now=now
        )

    def get_feed_pattern(self, feed_id: int, now: int = None) -> PatternResult:
        """
        Get a feed's pattern for display.

        Never raises for history failures; the reason is returned in the
        result for the caller to report.
        """
        try:
            return PatternResult(feed_id=feed_id, pattern=self.analyze_feed_pattern(feed_id, now))
        except HistoryUnavailableError as e:
            return PatternResult(feed_id=feed_id, error=e.reason)

    @staticmethod
    def get_most_active_hours(pattern: UpdatePattern) -> List[Tuple[int, float]]:
        """Top 3 (hour, density) pairs of a pattern, densest first."""
        return get_most_active_hours(pattern)

    # =========================================================================
    # TTL
    # =========================================================================

    def get_adjusted_ttl(self, feed_id: int) -> int:
        """Get the TTL to use for a feed right now."""
        return self.get_dynamic_ttl(feed_id)

    def get_dynamic_ttl(self, feed_id: int, current_time: int = None) -> int:
        """
        Compute a feed's TTL for the given time.

        Args:
            feed_id: Feed id
            current_time: Unix timestamp, None for now

        Returns:
            TTL in seconds, always within the administrator bounds
        """
        now = int(time.time()) if current_time is None else int(current_time)

        cached = self.ttl_cache.get_fresh(feed_id, now)
        if cached is not None:
            return cached

        previous = self.ttl_cache.get_previous(feed_id)

        try:
            pattern = self.analyze_feed_pattern(feed_id, now)
        except HistoryUnavailableError as e:
            fallback = self.bounds.clamp(previous.ttl) if previous else self.bounds.max_ttl
            self._log(f"{e}; using fallback TTL {fallback}s", level="warn")
            return fallback

        raw = predict_ttl(pattern, now, self.bounds.default_ttl, self._get_timezone())
        if raw is None:
            raw = self.bounds.max_ttl

        ttl = smooth_ttl(previous.ttl, raw) if previous else raw
        ttl = self.bounds.clamp(ttl)

        self.ttl_cache.store(feed_id, ttl, now)
        self._log(
            f"Feed {feed_id}: raw={raw}s previous={previous.ttl if previous else None} ttl={ttl}s",
            level="debug"
        )
        return ttl

    def clear_cache(self, feed_id: int) -> None:
        """
        Drop a feed's cached pattern and TTL.

        Call after the feed's history changed materially or its settings were
        edited. Safe for feeds with nothing cached.
        """
        # Pattern first: a concurrent miss in between reloads history
        # instead of predicting from the stale pattern.
        had_pattern = self.pattern_cache.invalidate(feed_id)
        had_ttl = self.ttl_cache.invalidate(feed_id)
        if had_pattern or had_ttl:
            self._log(f"Cleared cache for feed {feed_id}", level="debug")

    # =========================================================================
    # STATUS
    # =========================================================================

    def get_status(self) -> Dict[str, Any]:
        """Get engine status for diagnostics."""
        return {
            "feeds_with_patterns": len(self.pattern_cache),
            "feeds_with_ttl": len(self.ttl_cache),
            "pattern_cache_expiry_seconds": self.pattern_cache.expiry_seconds,
            "ttl_cache_expiry_seconds": self.ttl_cache.expiry_seconds,
            "bounds": self.bounds.to_dict(),
            "lookback_seconds": self.config.lookback_seconds,
        }
