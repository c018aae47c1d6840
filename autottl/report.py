"""
Feed listing for administrators

Wraps the feed statistics rows of the history database into StatItem
records carrying the effective (clamped) TTL, and renders durations in
human-readable form.
"""

import html
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, TYPE_CHECKING

from .config import TTLBounds

if TYPE_CHECKING:
    from .database import FeedDatabase

_EPOCH = datetime(1970, 1, 1)


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def human_interval_from_seconds(seconds: int) -> str:
    """
    Render a duration as calendar parts, e.g. "1 day 2 hours 5 minutes".

    Parts are the calendar difference between the epoch and epoch + seconds,
    so months and years follow the 1970 calendar. Zero parts are omitted;
    seconds are only shown when the minutes part is zero.
    """
    target = _EPOCH + timedelta(seconds=max(0, int(seconds)))

    years = target.year - _EPOCH.year
    months = target.month - 1
    days = target.day - 1
    hours, minutes, secs = target.hour, target.minute, target.second

    parts = []
    for count, unit in ((years, "year"), (months, "month"), (days, "day"), (hours, "hour")):
        if count > 0:
            parts.append(_plural(count, unit))

    if minutes > 0:
        parts.append(_plural(minutes, "minute"))
    elif secs > 0:
        parts.append(_plural(secs, "second"))

    return " ".join(parts)


@dataclass
class StatItem:
    """One row of the administrator feed listing."""
    id: int
    name: str
    last_update: int
    ttl: int
    avg_ttl: int
    effective_ttl: int

    @property
    def uses_auto_ttl(self) -> bool:
        return self.ttl == 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "last_update": self.last_update,
            "ttl": self.ttl,
            "avg_ttl": self.avg_ttl,
            "avg_ttl_human": human_interval_from_seconds(self.avg_ttl),
            "effective_ttl": self.effective_ttl,
            "effective_ttl_human": human_interval_from_seconds(self.effective_ttl),
        }


def build_feed_stats(
    database: 'FeedDatabase',
    bounds: TTLBounds,
    uses_auto_ttl: bool,
    cutoff: int = None,
    limit: int = 100
) -> List[StatItem]:
    """
    Build the feed listing.

    Automatic feeds get their average interval clamped; static feeds get
    their configured TTL clamped, through the same bounds policy.
    """
    items = []
    for row in database.get_feed_stats(uses_auto_ttl, cutoff=cutoff, limit=limit):
        ttl = int(row["ttl"])
        avg_ttl = int(row["avg_ttl"] or 0)
        items.append(StatItem(
            id=int(row["id"]),
            name=html.unescape(row["name"]),
            last_update=int(row["last_update"]),
            ttl=ttl,
            avg_ttl=avg_ttl,
            effective_ttl=bounds.clamp(avg_ttl if ttl == 0 else ttl),
        ))
    return items
