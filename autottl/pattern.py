"""
Update Pattern Analysis Module

Builds the statistical profile of a feed's historical update timing from
the ascending list of its entry timestamps.

Key Features:
- Hour-of-day density (updates per covered day) and mean inter-update gap
- Day-of-week mean inter-update gap (Sun-Sat)
- Sufficiency flag for the full model
- Simple average interval as the ultimate fallback signal

Patterns are immutable snapshots: every analysis produces a fresh
UpdatePattern, nothing is ever updated in place.
"""

import time
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .temporal import bucket_timestamp, is_valid_timestamp, weekday_name


# =============================================================================
# CONSTANTS
# =============================================================================

MIN_ENTRIES_FOR_ANALYSIS = 10     # Below this only the simple average is computed
ENOUGH_DATA_MIN_ENTRIES = 30      # Full model needs this many entries...
ENOUGH_DATA_MIN_DAYS = 7          # ...spread over this many distinct days
MOST_ACTIVE_HOURS_LIMIT = 3

DAYS_PER_WEEK = 7


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class WeekdayStats:
    """Mean inter-update gap for one weekday, and whether any gap was seen."""
    interval: float = 0.0
    has_updates: bool = False

    @property
    def usable(self) -> bool:
        return self.has_updates and self.interval > 0


EMPTY_WEEKDAYS: Tuple[WeekdayStats, ...] = tuple(WeekdayStats() for _ in range(DAYS_PER_WEEK))


@dataclass(frozen=True)
class UpdatePattern:
    """
    Statistical profile of a feed's update timing.

    hour_density / hour_interval only hold hours that appear in the input.
    weekdays always holds 7 entries (index 0=Sunday), zero/False when absent.
    When has_enough_data is False only simple_avg_interval is meaningful.
    """
    hour_density: Dict[int, float] = field(default_factory=dict)
    hour_interval: Dict[int, float] = field(default_factory=dict)
    weekdays: Tuple[WeekdayStats, ...] = EMPTY_WEEKDAYS
    total_entries: int = 0
    days_covered: int = 0
    has_enough_data: bool = False
    simple_avg_interval: float = 0.0
    last_analysis_time: Optional[int] = None

    def __post_init__(self):
        if len(self.weekdays) != DAYS_PER_WEEK:
            raise ValueError(f"weekdays must have {DAYS_PER_WEEK} entries, got {len(self.weekdays)}")
        if self.last_analysis_time is None:
            object.__setattr__(self, "last_analysis_time", int(time.time()))

    @property
    def day_of_week_interval(self) -> Dict[int, float]:
        return {day: stats.interval for day, stats in enumerate(self.weekdays)}

    @property
    def day_of_week_has_updates(self) -> Dict[int, bool]:
        return {day: stats.has_updates for day, stats in enumerate(self.weekdays)}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "hour_density": {h: round(d, 3) for h, d in sorted(self.hour_density.items())},
            "hour_interval": {h: round(i, 1) for h, i in sorted(self.hour_interval.items())},
            "weekdays": [
                {
                    "day": day,
                    "day_name": weekday_name(day),
                    "interval": round(stats.interval, 1),
                    "has_updates": stats.has_updates,
                }
                for day, stats in enumerate(self.weekdays)
            ],
            "total_entries": self.total_entries,
            "days_covered": self.days_covered,
            "has_enough_data": self.has_enough_data,
            "simple_avg_interval": round(self.simple_avg_interval, 1),
            "last_analysis_time": self.last_analysis_time,
        }


@dataclass(frozen=True)
class PatternResult:
    """
    Outcome of a display-path pattern lookup.

    Either a pattern is available, or analysis failed and error carries the
    reason for the caller to log.
    """
    feed_id: int
    pattern: Optional[UpdatePattern] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.pattern is not None


# =============================================================================
# ANALYSIS
# =============================================================================

def _simple_average(timestamps: Sequence[int]) -> float:
    count = len(timestamps)
    if count == 0:
        return 0.0
    return (timestamps[-1] - timestamps[0]) / max(1, count - 1)


def _mean(values: List[int]) -> float:
    return sum(values) / len(values) if values else 0.0


def analyze_timestamps(
    timestamps: Sequence[int],
    tz: Union[str, tzinfo, None] = None,
    now: int = None
) -> UpdatePattern:
    """
    Analyze an ascending sequence of entry timestamps.

    Every entry counts once toward hourly density and distinct days. Gaps
    to the next entry are attributed to the hour and weekday of the earlier
    entry; non-positive gaps (duplicates, clock anomalies) are discarded.

    Args:
        timestamps: Ascending unix timestamps (not re-sorted)
        tz: Timezone used for calendar bucketing
        now: Analysis time recorded on the pattern (defaults to now)

    Returns:
        A fresh, immutable UpdatePattern
    """
    analysis_time = int(now) if now is not None else int(time.time())
    entries = [int(ts) for ts in timestamps if is_valid_timestamp(int(ts))]
    total = len(entries)

    # Not enough entries: only the simple average is available
    if total < MIN_ENTRIES_FOR_ANALYSIS:
        return UpdatePattern(
            total_entries=total,
            has_enough_data=False,
            simple_avg_interval=_simple_average(entries),
            last_analysis_time=analysis_time,
        )

    hour_counts: Dict[int, int] = defaultdict(int)
    hour_gaps: Dict[int, List[int]] = defaultdict(list)
    weekday_gaps: Dict[int, List[int]] = defaultdict(list)
    unique_dates = set()

    for i, timestamp in enumerate(entries):
        bucket = bucket_timestamp(timestamp, tz)
        unique_dates.add(bucket.date_key)
        hour_counts[bucket.hour] += 1

        if i + 1 < total:
            gap = entries[i + 1] - timestamp
            if gap > 0:
                hour_gaps[bucket.hour].append(gap)
                weekday_gaps[bucket.weekday].append(gap)

    days_covered = len(unique_dates)

    hour_interval = {hour: _mean(hour_gaps.get(hour, [])) for hour in hour_counts}
    hour_density = {
        hour: count / max(1, days_covered)
        for hour, count in hour_counts.items()
    }
    weekdays = tuple(
        WeekdayStats(
            interval=_mean(weekday_gaps.get(day, [])),
            has_updates=len(weekday_gaps.get(day, [])) > 0,
        )
        for day in range(DAYS_PER_WEEK)
    )

    return UpdatePattern(
        hour_density=hour_density,
        hour_interval=hour_interval,
        weekdays=weekdays,
        total_entries=total,
        days_covered=days_covered,
        has_enough_data=(total >= ENOUGH_DATA_MIN_ENTRIES and days_covered >= ENOUGH_DATA_MIN_DAYS),
        simple_avg_interval=_simple_average(entries),
        last_analysis_time=analysis_time,
    )


def get_most_active_hours(
    pattern: UpdatePattern,
    limit: int = MOST_ACTIVE_HOURS_LIMIT
) -> List[Tuple[int, float]]:
    """
    Get the hours with the highest update density.

    Ties keep hour-ascending order.

    Returns:
        Up to `limit` (hour, density) pairs, densest first
    """
    ranked = sorted(sorted(pattern.hour_density.items()), key=lambda item: item[1], reverse=True)
    return ranked[:limit]
