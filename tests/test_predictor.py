"""
Tests for raw TTL prediction from an update pattern.
"""

import pytest

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from autottl.pattern import UpdatePattern, WeekdayStats, EMPTY_WEEKDAYS, analyze_timestamps
from autottl.predictor import predict_ttl, MIN_HOUR_WEIGHT, MAX_HOUR_WEIGHT

# 2024-01-01 08:00:00 UTC, a Monday (weekday 1)
MONDAY_8AM = 1704096000


def make_pattern(hour_interval=None, hour_density=None, weekdays=None, simple=0.0):
    """Build a pattern that passed the sufficiency check."""
    return UpdatePattern(
        hour_density=hour_density if hour_density is not None else {},
        hour_interval=hour_interval if hour_interval is not None else {},
        weekdays=weekdays if weekdays is not None else EMPTY_WEEKDAYS,
        total_entries=50,
        days_covered=10,
        has_enough_data=True,
        simple_avg_interval=simple,
        last_analysis_time=MONDAY_8AM,
    )


def with_weekdays(**intervals):
    """Weekday table with the given {day_index: interval} entries."""
    table = list(EMPTY_WEEKDAYS)
    for key, interval in intervals.items():
        table[int(key[1:])] = WeekdayStats(interval=interval, has_updates=True)
    return tuple(table)


class TestInsufficientData:

    def test_simple_average_truncated(self):
        pattern = UpdatePattern(simple_avg_interval=1800.7, last_analysis_time=MONDAY_8AM)
        assert predict_ttl(pattern, MONDAY_8AM, default_ttl=3600) == 1800

    def test_no_signal_returns_none(self):
        pattern = UpdatePattern(last_analysis_time=MONDAY_8AM)
        assert predict_ttl(pattern, MONDAY_8AM, default_ttl=600) is None


class TestBaseInterval:
    """Tests for hour interval selection and its fallbacks."""

    def test_current_hour_interval(self):
        pattern = make_pattern(
            hour_interval={8: 7200, 9: 3600},
            hour_density={8: 1.0, 9: 1.0},
        )
        assert predict_ttl(pattern, MONDAY_8AM, default_ttl=600) == 7200

    def test_mean_of_other_hours(self):
        pattern = make_pattern(
            hour_interval={9: 3600, 10: 10800},
            hour_density={9: 1.0, 10: 1.0},
        )
        assert predict_ttl(pattern, MONDAY_8AM, default_ttl=600) == 7200

    def test_zero_hours_excluded_from_mean(self):
        pattern = make_pattern(
            hour_interval={8: 0, 9: 0, 10: 6000},
            hour_density={8: 1.0, 9: 1.0, 10: 1.0},
        )
        assert predict_ttl(pattern, MONDAY_8AM, default_ttl=600) == 6000

    def test_simple_average_fallback(self):
        pattern = make_pattern(hour_interval={8: 0}, hour_density={8: 1.0}, simple=5000)
        assert predict_ttl(pattern, MONDAY_8AM, default_ttl=600) == 5000

    def test_floor_at_default_ttl(self):
        pattern = make_pattern(hour_interval={8: 100}, hour_density={8: 1.0})
        assert predict_ttl(pattern, MONDAY_8AM, default_ttl=600) == 600


class TestWeekdayOverride:

    def test_current_weekday_wins(self):
        pattern = make_pattern(
            hour_interval={8: 7200},
            hour_density={8: 1.0},
            weekdays=with_weekdays(d1=9000, d3=1000),
        )
        assert predict_ttl(pattern, MONDAY_8AM, default_ttl=600) == 9000

    def test_mean_of_weekdays_with_data(self):
        pattern = make_pattern(
            hour_interval={8: 7200},
            hour_density={8: 1.0},
            weekdays=with_weekdays(d2=4000, d3=6000),
        )
        assert predict_ttl(pattern, MONDAY_8AM, default_ttl=600) == 5000

    def test_zero_interval_today_not_used(self):
        weekdays = list(with_weekdays(d2=4000, d3=6000))
        weekdays[1] = WeekdayStats(interval=0, has_updates=True)
        pattern = make_pattern(
            hour_interval={8: 7200},
            hour_density={8: 1.0},
            weekdays=tuple(weekdays),
        )
        assert predict_ttl(pattern, MONDAY_8AM, default_ttl=600) == 5000

    def test_no_weekday_data_keeps_hour_interval(self):
        pattern = make_pattern(hour_interval={8: 7200}, hour_density={8: 1.0})
        assert predict_ttl(pattern, MONDAY_8AM, default_ttl=600) == 7200


class TestDensityWeight:

    def test_busy_hour_shortens(self):
        # avg density 2.0, current 4.0 -> weight 0.5
        pattern = make_pattern(
            hour_interval={8: 10000},
            hour_density={8: 4.0, 9: 1.0, 10: 1.0},
        )
        assert predict_ttl(pattern, MONDAY_8AM, default_ttl=0) == 5000

    def test_quiet_hour_capped_at_double(self):
        # avg density 2.0, current 0.25 -> weight 8.0, capped at 2.0
        pattern = make_pattern(
            hour_interval={8: 10000},
            hour_density={8: 0.25, 9: 3.75},
        )
        assert predict_ttl(pattern, MONDAY_8AM, default_ttl=0) == int(10000 * MAX_HOUR_WEIGHT)

    def test_density_floor(self):
        # avg density 0.15, current 0.05 floored to 0.1 -> weight 1.5
        pattern = make_pattern(
            hour_interval={8: 10000},
            hour_density={8: 0.05, 9: 0.25},
        )
        assert predict_ttl(pattern, MONDAY_8AM, default_ttl=0) == pytest.approx(15000, abs=1)

    def test_no_density_for_hour(self):
        pattern = make_pattern(hour_interval={9: 3000}, hour_density={9: 5.0})
        assert predict_ttl(pattern, MONDAY_8AM, default_ttl=0) == 3000

    def test_weight_range(self):
        assert MIN_HOUR_WEIGHT == 0.5
        assert MAX_HOUR_WEIGHT == 2.0


class TestTimezone:

    def test_hour_follows_timezone(self):
        pattern = make_pattern(
            hour_interval={8: 1000, 17: 5000},
            hour_density={8: 1.0, 17: 1.0},
        )
        assert predict_ttl(pattern, MONDAY_8AM, default_ttl=0) == 1000
        assert predict_ttl(pattern, MONDAY_8AM, default_ttl=0, tz="Asia/Tokyo") == 5000


class TestDailyFeed:

    def test_daily_feed_predicts_a_day(self):
        timestamps = [MONDAY_8AM + day * 86400 for day in range(40)]
        pattern = analyze_timestamps(timestamps, now=MONDAY_8AM + 40 * 86400)
        ttl = predict_ttl(pattern, MONDAY_8AM + 40 * 86400, default_ttl=600)
        assert ttl == pytest.approx(86400, abs=1)
