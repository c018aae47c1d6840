#!/usr/bin/env python3
"""
Auto-TTL Report

Prints the administrator feed listing of a feed history database, or the
update pattern and current dynamic TTL of one feed.

Usage:
    python tools/ttl_report.py --db ~/.autottl/feeds.db
    python tools/ttl_report.py --db ~/.autottl/feeds.db --static
    python tools/ttl_report.py --db ~/.autottl/feeds.db --feed 42 --timezone Europe/Berlin
"""

import argparse
import logging
import os
import sys
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from autottl.config import AutoTTLConfig
from autottl.database import FeedDatabase
from autottl.engine import AutoTTLEngine
from autottl.report import build_feed_stats, human_interval_from_seconds
from autottl.temporal import weekday_name

# =============================================================================
# Logging Setup
# =============================================================================

logger = logging.getLogger("autottl")


def setup_logging(log_file: str = None, level: int = logging.INFO) -> None:
    """
    Configure console (and optionally file) logging.

    Args:
        log_file: Path to log file, None for console only
        level: Logging level (default: INFO)
    """
    logger.setLevel(level)
    logger.propagate = False  # Don't propagate to root logger (prevents duplicates)
    logger.handlers = []

    formatter = logging.Formatter(
        '%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            Path(log_dir).mkdir(parents=True, exist_ok=True)

        # File handler with rotation (10MB max, keep 5 backups)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)


# =============================================================================
# Report
# =============================================================================

def print_feed_listing(db: FeedDatabase, config: AutoTTLConfig, static: bool) -> None:
    snapshot = config.snapshot()
    cutoff = int(time.time()) - snapshot.lookback_seconds
    items = build_feed_stats(
        db, snapshot.bounds, uses_auto_ttl=not static,
        cutoff=cutoff, limit=snapshot.stats_count
    )

    title = "STATIC TTL FEEDS" if static else "AUTO TTL FEEDS"
    print("=" * 60)
    print(f"{title} ({len(items)})")
    print("=" * 60)
    for item in items:
        avg = human_interval_from_seconds(item.avg_ttl) or "no entries"
        print(f"  [{item.id}] {item.name}")
        print(f"      avg interval: {avg}")
        print(f"      effective TTL: {human_interval_from_seconds(item.effective_ttl)}")


def print_feed_pattern(engine: AutoTTLEngine, feed_id: int) -> int:
    result = engine.get_feed_pattern(feed_id)
    if not result.ok:
        logger.warning(f"Failed to analyze pattern for feed {feed_id}: {result.error}")
        return 1

    pattern = result.pattern
    print("=" * 60)
    print(f"FEED {feed_id} UPDATE PATTERN")
    print("=" * 60)
    print(f"  Entries: {pattern.total_entries} over {pattern.days_covered} days")
    print(f"  Enough data: {pattern.has_enough_data}")
    print(f"  Simple average: {human_interval_from_seconds(int(pattern.simple_avg_interval))}")

    active = engine.get_most_active_hours(pattern)
    if active:
        print("  Most active hours:")
        for hour, density in active:
            print(f"    {hour:02d}:00  {density:.2f} updates/day")

    weekdays = [
        (day, stats) for day, stats in enumerate(pattern.weekdays) if stats.usable
    ]
    if weekdays:
        print("  Weekday intervals:")
        for day, stats in weekdays:
            print(f"    {weekday_name(day):<10} {human_interval_from_seconds(int(stats.interval))}")

    ttl = engine.get_adjusted_ttl(feed_id)
    print(f"  Dynamic TTL now: {human_interval_from_seconds(ttl)} ({ttl}s)")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Auto-TTL feed report")
    parser.add_argument("--db", default=AutoTTLConfig.db_path, help="Feed history database")
    parser.add_argument("--static", action="store_true", help="List static-TTL feeds instead")
    parser.add_argument("--feed", type=int, help="Show pattern and TTL of one feed")
    parser.add_argument("--default-ttl", type=int, default=AutoTTLConfig.default_ttl)
    parser.add_argument("--max-ttl", type=int, default=AutoTTLConfig.max_ttl)
    parser.add_argument("--timezone", default=os.environ.get("AUTOTTL_TIMEZONE"))
    parser.add_argument("--limit", type=int, default=AutoTTLConfig.stats_count)
    parser.add_argument("--log-file", default=os.environ.get("AUTOTTL_LOG_FILE"))
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    setup_logging(args.log_file, logging.DEBUG if args.verbose else logging.INFO)

    config = AutoTTLConfig(
        db_path=args.db,
        default_ttl=args.default_ttl,
        max_ttl=args.max_ttl,
        stats_count=args.limit,
        timezone=args.timezone,
    )
    error = config.validate()
    if error:
        logger.error(error)
        return 2

    db = FeedDatabase(config.db_path)
    db.initialize()
    try:
        if args.feed is not None:
            engine = AutoTTLEngine(db, config.snapshot())
            return print_feed_pattern(engine, args.feed)
        print_feed_listing(db, config, args.static)
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
