"""
Temporal bucketing for auto-ttl

Decomposes unix timestamps into the calendar buckets used by pattern
analysis: hour of day (0-23), day of week (0=Sunday .. 6=Saturday) and a
per-calendar-day key for distinct-day counting.

All functions are pure. Timezones that cannot be resolved fall back to UTC.
"""

import zoneinfo
from datetime import datetime, timezone, tzinfo
from typing import NamedTuple, Optional, Union

DEFAULT_TIMEZONE = timezone.utc

# 9999-12-31 00:00:00 UTC; leaves room for any UTC offset
MAX_TIMESTAMP = 253402214400

WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday",
                 "Thursday", "Friday", "Saturday"]


class TemporalBucket(NamedTuple):
    """Calendar decomposition of one timestamp."""
    hour: int       # 0-23
    weekday: int    # 0=Sunday .. 6=Saturday
    date_key: str   # ISO date, e.g. "2024-03-09"


def _load_zone(name: str) -> Optional[tzinfo]:
    try:
        return zoneinfo.ZoneInfo(name)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError, OSError):
        # Directory names such as "America" raise IsADirectoryError
        return None


def is_known_timezone(value: Union[str, tzinfo, None]) -> bool:
    """Check that a timezone value resolves without falling back to UTC."""
    if value is None or value == '' or isinstance(value, tzinfo):
        return True
    return _load_zone(str(value)) is not None


def resolve_timezone(value: Union[str, tzinfo, None]) -> tzinfo:
    """
    Resolve a timezone name or object.

    Args:
        value: IANA name, tzinfo instance, or None

    Returns:
        The resolved tzinfo, or UTC when value is empty or unknown
    """
    if value is None or value == '':
        return DEFAULT_TIMEZONE
    if isinstance(value, tzinfo):
        return value
    zone = _load_zone(str(value))
    return zone if zone is not None else DEFAULT_TIMEZONE


def is_valid_timestamp(timestamp: int) -> bool:
    """Check that a timestamp is within the range bucketing supports."""
    return 0 <= timestamp <= MAX_TIMESTAMP


def bucket_timestamp(timestamp: int, tz: Union[str, tzinfo, None] = None) -> TemporalBucket:
    """
    Bucket a unix timestamp in the given timezone.

    Weekday numbering is fixed (0=Sunday) and independent of locale.
    """
    dt = datetime.fromtimestamp(int(timestamp), resolve_timezone(tz))
    # datetime.weekday() is Monday=0; shift so Sunday=0
    weekday = (dt.weekday() + 1) % 7
    return TemporalBucket(hour=dt.hour, weekday=weekday, date_key=dt.date().isoformat())


def weekday_name(weekday: int) -> Optional[str]:
    """Get day name for a Sunday-based weekday number."""
    return WEEKDAY_NAMES[weekday] if 0 <= weekday <= 6 else None
