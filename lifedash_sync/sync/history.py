"""Durable log of sync attempts, backed by SQLite."""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

from ..config import Config, SYNC_HISTORY_LIMIT

__all__ = ["SyncRecord", "SyncHistory", "LastSync"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncRecord:
    """Outcome of one upload attempt."""

    timestamp: datetime
    success: bool
    record_count: int
    error_message: Optional[str] = None
    id: int = 0

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "SyncRecord":
        """Create from database row."""
        return cls(
            id=row["id"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
            success=bool(row["success"]),
            record_count=row["record_count"],
            error_message=row["error_message"],
        )


@dataclass(frozen=True)
class LastSync:
    """Date and record timestamp of the last successful upload."""

    date: str
    timestamp: str


class SyncHistory:
    """SQLite-based sync history, capped to the most recent entries."""

    def __init__(self, db_path: Optional[Path] = None, max_entries: int = SYNC_HISTORY_LIMIT):
        """Initialize the sync history.

        Args:
            db_path: Path to SQLite database file
            max_entries: Maximum number of sync records to keep
        """
        if db_path is None:
            db_path = Config.get_data_dir() / "lifedashboard.db"

        self.db_path = db_path
        self.max_entries = max_entries
        self._local = threading.local()
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if not hasattr(self._local, "connection"):
            self._local.connection = sqlite3.connect(str(self.db_path))
            self._local.connection.row_factory = sqlite3.Row
        return self._local.connection

    @contextmanager
    def _cursor(self) -> Iterator[sqlite3.Cursor]:
        """Context manager for database cursor."""
        conn = self._get_connection()
        cursor = conn.cursor()
        try:
            yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()

    def _init_db(self) -> None:
        """Initialize the database schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._cursor() as cursor:
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS sync_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    success INTEGER NOT NULL,
                    record_count INTEGER NOT NULL,
                    error_message TEXT
                )
                """
            )

            # Marker of the last successful upload
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS sync_state (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )

    def add(self, record: SyncRecord) -> int:
        """Append a sync record, evicting the oldest beyond the cap.

        Args:
            record: The sync outcome to store

        Returns:
            ID assigned to the new row
        """
        with self._cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO sync_history (timestamp, success, record_count, error_message)
                VALUES (?, ?, ?, ?)
                """,
                (
                    record.timestamp.isoformat(),
                    1 if record.success else 0,
                    record.record_count,
                    record.error_message,
                ),
            )
            row_id = cursor.lastrowid
            cursor.execute(
                """
                DELETE FROM sync_history
                WHERE id IN (
                    SELECT id FROM sync_history
                    ORDER BY id DESC
                    LIMIT -1 OFFSET ?
                )
                """,
                (self.max_entries,),
            )
            if cursor.rowcount > 0:
                logger.debug(f"Evicted {cursor.rowcount} old sync records")
            return row_id

    def get_history(self, limit: Optional[int] = None) -> list[SyncRecord]:
        """Get sync records, newest first."""
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT id, timestamp, success, record_count, error_message
                FROM sync_history
                ORDER BY id DESC
                LIMIT ?
                """,
                (limit if limit is not None else -1,),
            )
            return [SyncRecord.from_row(row) for row in cursor.fetchall()]

    def success_count(self) -> int:
        """Number of stored successful syncs."""
        return self._count_where(success=True)

    def failure_count(self) -> int:
        """Number of stored failed syncs."""
        return self._count_where(success=False)

    def _count_where(self, success: bool) -> int:
        with self._cursor() as cursor:
            cursor.execute(
                "SELECT COUNT(*) FROM sync_history WHERE success = ?",
                (1 if success else 0,),
            )
            return cursor.fetchone()[0]

    # Last-sync marker

    def set_last_sync(self, sync_date: str, timestamp: str) -> None:
        """Record the date and timestamp of the last successful upload."""
        with self._cursor() as cursor:
            cursor.executemany(
                """
                INSERT INTO sync_state (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                [("last_sync_date", sync_date), ("last_sync_time", timestamp)],
            )

    def get_last_sync(self) -> Optional[LastSync]:
        """Get the last successful upload marker, or None if never synced."""
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT key, value FROM sync_state
                WHERE key IN ('last_sync_date', 'last_sync_time')
                """
            )
            values = {row["key"]: row["value"] for row in cursor.fetchall()}
        if "last_sync_date" not in values:
            return None
        return LastSync(date=values["last_sync_date"], timestamp=values.get("last_sync_time", ""))

    def close(self) -> None:
        """Close the database connection."""
        if hasattr(self._local, "connection"):
            self._local.connection.close()
            del self._local.connection
