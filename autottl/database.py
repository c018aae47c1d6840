"""
Database module for auto-ttl

Handles SQLite persistence for:
- Feed registry (name, static TTL setting, last update)
- Entry history (publication timestamps per feed)

The engine only reads from it: the ascending entry timestamps of one feed
within the lookback window, and the aggregated feed listing.

Thread Safety:
- Uses threading.local() to provide each thread with its own SQLite connection
- Prevents race conditions during concurrent writes
"""

import logging
import os
import sqlite3
import threading
import time
from typing import Any, Dict, List, Optional

logger = logging.getLogger("autottl.database")

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class FeedDatabase:
    """
    SQLite database manager for feed history.

    Provides persistence for:
    - Feeds (id, name, ttl, last_update); ttl = 0 means automatic TTL
    - Entries (feed_id, date)

    Thread Safety:
    - Each thread gets its own isolated SQLite connection via threading.local()
    - WAL mode enabled for better concurrent read/write performance
    """

    def __init__(self, db_path: str, plugin=None):
        """
        Initialize the database manager.

        Args:
            db_path: Path to SQLite database file
            plugin: Optional host object with a log(message, level=...) method
        """
        self.db_path = os.path.expanduser(db_path)
        self.plugin = plugin
        # Thread-local storage for connections
        self._local = threading.local()

    def _log(self, message: str, level: str = "debug") -> None:
        if self.plugin:
            self.plugin.log(f"AUTOTTL: {message}", level=level)
        else:
            logger.log(_LOG_LEVELS.get(level, logging.INFO), message)

    def _get_connection(self) -> sqlite3.Connection:
        """
        Get or create a thread-local database connection.

        Returns:
            sqlite3.Connection: Thread-local database connection
        """
        if not hasattr(self._local, 'conn') or self._local.conn is None:
            # Ensure directory exists
            db_dir = os.path.dirname(self.db_path)
            if db_dir:
                os.makedirs(db_dir, exist_ok=True)

            # Create new connection for this thread
            self._local.conn = sqlite3.connect(
                self.db_path,
                isolation_level=None  # Autocommit mode
            )
            self._local.conn.row_factory = sqlite3.Row

            # Enable Write-Ahead Logging for better multi-thread concurrency
            self._local.conn.execute("PRAGMA journal_mode=WAL;")

            self._log(
                f"FeedDatabase: Created thread-local connection (thread={threading.current_thread().name})",
                level='debug'
            )
        return self._local.conn

    def initialize(self):
        """Create database tables if they don't exist."""
        conn = self._get_connection()

        # =====================================================================
        # FEEDS TABLE
        # =====================================================================
        # ttl = 0 marks a feed as using the automatic (dynamic) TTL
        conn.execute("""
            CREATE TABLE IF NOT EXISTS feeds (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                ttl INTEGER NOT NULL DEFAULT 0,
                last_update INTEGER NOT NULL DEFAULT 0
            )
        """)

        # =====================================================================
        # ENTRIES TABLE
        # =====================================================================
        conn.execute("""
            CREATE TABLE IF NOT EXISTS entries (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                feed_id INTEGER NOT NULL,
                date INTEGER NOT NULL,
                title TEXT
            )
        """)

        # Index for the per-feed history query
        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_entries_feed_date
            ON entries(feed_id, date)
        """)

        self._log("FeedDatabase: Schema initialized", level='info')

    def close(self):
        """Close this thread's connection, if open."""
        conn = getattr(self._local, 'conn', None)
        if conn is not None:
            conn.close()
            self._local.conn = None

    # =========================================================================
    # FEEDS
    # =========================================================================

    def add_feed(self, name: str, ttl: int = 0, last_update: int = 0) -> int:
        """
        Register a feed.

        Returns:
            The new feed id
        """
        conn = self._get_connection()
        cursor = conn.execute(
            "INSERT INTO feeds (name, ttl, last_update) VALUES (?, ?, ?)",
            (name, ttl, last_update)
        )
        return cursor.lastrowid

    def get_feed(self, feed_id: int) -> Optional[Dict[str, Any]]:
        """Get feed info by id."""
        conn = self._get_connection()
        row = conn.execute(
            "SELECT * FROM feeds WHERE id = ?",
            (feed_id,)
        ).fetchone()
        return dict(row) if row else None

    def set_feed_ttl(self, feed_id: int, ttl: int) -> bool:
        """Set a feed's static TTL (0 switches it to automatic)."""
        conn = self._get_connection()
        result = conn.execute(
            "UPDATE feeds SET ttl = ? WHERE id = ?",
            (ttl, feed_id)
        )
        return result.rowcount > 0

    # =========================================================================
    # ENTRIES
    # =========================================================================

    def record_entry(self, feed_id: int, date: int, title: str = None) -> None:
        """Record one published entry and bump the feed's last_update."""
        conn = self._get_connection()
        conn.execute(
            "INSERT INTO entries (feed_id, date, title) VALUES (?, ?, ?)",
            (feed_id, date, title)
        )
        conn.execute(
            "UPDATE feeds SET last_update = MAX(last_update, ?) WHERE id = ?",
            (date, feed_id)
        )

    def fetch_recent_timestamps(self, feed_id: int, cutoff: int) -> List[int]:
        """
        Get entry timestamps of a feed newer than cutoff.

        Args:
            feed_id: Feed id
            cutoff: Only entries with date > cutoff are returned

        Returns:
            Ascending list of unix timestamps
        """
        conn = self._get_connection()
        rows = conn.execute("""
            SELECT date FROM entries
            WHERE feed_id = ? AND date > ?
            ORDER BY date ASC
        """, (feed_id, cutoff)).fetchall()
        return [int(row["date"]) for row in rows]

    def get_feed_stats(
        self,
        uses_auto_ttl: bool,
        cutoff: int = None,
        limit: int = 100
    ) -> List[Dict[str, Any]]:
        """
        Get per-feed average update interval over the lookback window.

        avg_ttl is (newest - oldest) / count over entries after cutoff, 0 for
        feeds without entries. Feeds with a zero average sort last.

        Args:
            uses_auto_ttl: True for feeds on automatic TTL (ttl = 0),
                False for feeds with a static TTL
            cutoff: Only entries with date > cutoff count (default: 30 days ago)
            limit: Maximum number of rows

        Returns:
            List of dicts with id, name, last_update, ttl, avg_ttl
        """
        if cutoff is None:
            cutoff = int(time.time()) - 30 * 86400
        where = "feeds.ttl = 0" if uses_auto_ttl else "feeds.ttl != 0"

        conn = self._get_connection()
        rows = conn.execute(f"""
            SELECT
                feeds.id,
                feeds.name,
                feeds.last_update,
                feeds.ttl,
                COALESCE((MAX(stats.date) - MIN(stats.date)) / COUNT(1), 0) AS avg_ttl
            FROM feeds
            LEFT JOIN (
                SELECT feed_id, date
                FROM entries
                WHERE date > ?
            ) AS stats ON feeds.id = stats.feed_id
            WHERE {where}
            GROUP BY feeds.id
            ORDER BY COALESCE((MAX(stats.date) - MIN(stats.date)) / COUNT(1), 0) = 0, avg_ttl ASC
            LIMIT ?
        """, (cutoff, limit)).fetchall()
        return [dict(row) for row in rows]
