"""
TTL Predictor

Maps an UpdatePattern and the current time to a raw predicted polling
interval (seconds). Pure function; bounds are applied by the engine.
"""

from datetime import tzinfo
from typing import Optional, Union

from .pattern import UpdatePattern
from .temporal import bucket_timestamp

# Hour density weighting
DENSITY_FLOOR = 0.1     # Density used as divisor never goes below this
MIN_HOUR_WEIGHT = 0.5   # Busiest hours at most halve the interval
MAX_HOUR_WEIGHT = 2.0   # Quietest hours at most double it


def _hour_weight(pattern: UpdatePattern, hour: int) -> float:
    """
    Weight the interval by how busy this hour is compared to the average.

    Above-average density shrinks the weight toward MIN_HOUR_WEIGHT,
    below-average density grows it toward MAX_HOUR_WEIGHT.
    """
    density = pattern.hour_density.get(hour, 0)
    if density <= 0:
        return 1.0

    valid_densities = [d for d in pattern.hour_density.values() if d > 0]
    avg_density = sum(valid_densities) / max(1, len(valid_densities))
    if avg_density <= 0:
        return 1.0

    weight = avg_density / max(DENSITY_FLOOR, density)
    return max(MIN_HOUR_WEIGHT, min(MAX_HOUR_WEIGHT, weight))


def predict_ttl(
    pattern: UpdatePattern,
    current_time: int,
    default_ttl: int,
    tz: Union[str, tzinfo, None] = None
) -> Optional[int]:
    """
    Predict the raw TTL for a feed at current_time.

    Args:
        pattern: Update pattern of the feed
        current_time: Unix timestamp to predict for
        default_ttl: Administrator floor for the full-model prediction
        tz: Timezone used to bucket current_time

    Returns:
        Predicted interval in seconds, or None when there is no signal at
        all and the caller should use its maximum TTL
    """
    # Insufficient data: simple average or nothing
    if not pattern.has_enough_data:
        if pattern.simple_avg_interval > 0:
            return int(pattern.simple_avg_interval)
        return None

    bucket = bucket_timestamp(current_time, tz)
    hour = bucket.hour

    # Interval observed at this hour, else mean over all hours, else simple average
    base_interval = pattern.hour_interval.get(hour, 0)
    if base_interval <= 0:
        valid_intervals = [i for i in pattern.hour_interval.values() if i > 0]
        if valid_intervals:
            base_interval = sum(valid_intervals) / len(valid_intervals)
        else:
            base_interval = pattern.simple_avg_interval

    # Weekday override: this weekday's interval, else mean over weekdays with data
    today = pattern.weekdays[bucket.weekday]
    if today.usable:
        base_interval = today.interval
    else:
        usable_days = [stats.interval for stats in pattern.weekdays if stats.usable]
        if usable_days:
            base_interval = sum(usable_days) / len(usable_days)

    raw = base_interval * _hour_weight(pattern, hour)

    return int(max(default_ttl, raw))
