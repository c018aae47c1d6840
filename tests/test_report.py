"""
Tests for the administrator feed listing.
"""

from unittest.mock import MagicMock

import pytest

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from autottl.config import TTLBounds
from autottl.report import StatItem, build_feed_stats, human_interval_from_seconds


class TestHumanInterval:

    @pytest.mark.parametrize("seconds,expected", [
        (0, ""),
        (1, "1 second"),
        (45, "45 seconds"),
        (60, "1 minute"),
        (3600, "1 hour"),
        (3601, "1 hour 1 second"),
        (3661, "1 hour 1 minute"),
        (7320, "2 hours 2 minutes"),
        (86400, "1 day"),
        (90000, "1 day 1 hour"),
        (2678400, "1 month"),
        (31536000, "1 year"),
    ])
    def test_render(self, seconds, expected):
        assert human_interval_from_seconds(seconds) == expected

    def test_negative_is_empty(self):
        assert human_interval_from_seconds(-5) == ""


class TestBuildFeedStats:

    def _database(self, rows):
        database = MagicMock()
        database.get_feed_stats.return_value = rows
        return database

    def test_auto_feeds_clamped(self):
        database = self._database([
            {"id": 1, "name": "Fast", "last_update": 10, "ttl": 0, "avg_ttl": 120},
            {"id": 2, "name": "Quiet", "last_update": 20, "ttl": 0, "avg_ttl": 0},
            {"id": 3, "name": "Normal", "last_update": 30, "ttl": 0, "avg_ttl": 5000},
        ])
        items = build_feed_stats(database, TTLBounds(600, 86400), True, cutoff=0)

        assert [item.effective_ttl for item in items] == [600, 86400, 5000]
        database.get_feed_stats.assert_called_once_with(True, cutoff=0, limit=100)

    def test_static_feeds_use_configured_ttl(self):
        database = self._database([
            {"id": 4, "name": "Static", "last_update": 0, "ttl": 100000, "avg_ttl": 900},
        ])
        items = build_feed_stats(database, TTLBounds(600, 86400), False)
        assert items[0].effective_ttl == 86400
        assert not items[0].uses_auto_ttl

    def test_name_unescaped(self):
        database = self._database([
            {"id": 5, "name": "Tom &amp; Jerry", "last_update": 0, "ttl": 0, "avg_ttl": 3600},
        ])
        items = build_feed_stats(database, TTLBounds(600, 86400), True)
        assert items[0].name == "Tom & Jerry"

    def test_inconsistent_bounds(self):
        database = self._database([
            {"id": 6, "name": "Any", "last_update": 0, "ttl": 0, "avg_ttl": 100},
        ])
        items = build_feed_stats(database, TTLBounds(7200, 3600), True)
        assert items[0].effective_ttl == 7200


class TestStatItem:

    def test_to_dict(self):
        item = StatItem(id=1, name="News", last_update=0, ttl=0, avg_ttl=3661, effective_ttl=3661)
        data = item.to_dict()
        assert data["avg_ttl_human"] == "1 hour 1 minute"
        assert data["effective_ttl_human"] == "1 hour 1 minute"
        assert item.uses_auto_ttl
