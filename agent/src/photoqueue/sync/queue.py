"""SQLite-backed durable queue for captures awaiting delivery."""

import secrets
import sqlite3
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

from photoqueue.exceptions import StorageError


def new_record_id(created_at: int | None = None) -> str:
    """Generate a record id that sorts by creation time.

    Format: ``<epoch ms>-<random hex>``.
    """
    stamp = created_at if created_at is not None else int(time.time() * 1000)
    return f"{stamp}-{secrets.token_hex(6)}"


@dataclass(frozen=True)
class CaptureRecord:
    """A captured photo waiting for server acknowledgement."""

    id: str
    payload: str  # data:image/<type>;base64,<body>
    created_at: int  # epoch milliseconds

    @classmethod
    def create(cls, payload: str, created_at: int | None = None) -> "CaptureRecord":
        """Build a new record stamped with the current time."""
        stamp = created_at if created_at is not None else int(time.time() * 1000)
        return cls(id=new_record_id(stamp), payload=payload, created_at=stamp)


class UploadQueue:
    """SQLite-backed persistent queue for offline capture uploads.

    Records stay in the queue until the server acknowledges them. The queue
    persists across client restarts and preserves insertion order through an
    autoincrement sequence column.

    Records that the server keeps rejecting are moved to a dead-letter state
    (``status = 'failed'``) so they no longer block the records behind them.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the upload queue.

        Args:
            db_path: Path to the SQLite database file

        Raises:
            StorageError: If the database cannot be opened or initialized
        """
        self.db_path = db_path
        try:
            db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._create_table()
        except (sqlite3.Error, OSError) as e:
            raise StorageError("open", e) from e

    def _create_table(self) -> None:
        """Create the queue table if it doesn't exist."""
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS upload_queue (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                payload TEXT NOT NULL,
                created_at INTEGER NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending',
                rejections INTEGER NOT NULL DEFAULT 0,
                error TEXT,
                failed_at TEXT
            )
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_queue_status_seq
            ON upload_queue (status, seq)
        """)
        self._conn.commit()

    def _execute(self, operation: str, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        """Run one statement in its own transaction, translating driver errors."""
        try:
            with self._conn:
                return self._conn.execute(sql, params)
        except sqlite3.Error as e:
            raise StorageError(operation, e) from e

    @staticmethod
    def _to_record(row: sqlite3.Row) -> CaptureRecord:
        return CaptureRecord(
            id=row["id"],
            payload=row["payload"],
            created_at=row["created_at"],
        )

    def enqueue(self, record: CaptureRecord) -> str:
        """Append a capture record to the queue.

        Args:
            record: The record to persist

        Returns:
            The record id

        Raises:
            StorageError: On any storage failure, including a duplicate id
        """
        self._execute(
            "enqueue",
            """
            INSERT INTO upload_queue (id, payload, created_at, status)
            VALUES (?, ?, ?, 'pending')
            """,
            (record.id, record.payload, record.created_at),
        )
        return record.id

    def list_all(self) -> list[CaptureRecord]:
        """Return all pending records in insertion order."""
        cursor = self._execute(
            "list_all",
            """
            SELECT id, payload, created_at FROM upload_queue
            WHERE status = 'pending'
            ORDER BY seq ASC
            """,
        )
        return [self._to_record(row) for row in cursor.fetchall()]

    def get(self, record_id: str) -> CaptureRecord | None:
        """Return one pending record by id, or None."""
        cursor = self._execute(
            "get",
            "SELECT id, payload, created_at FROM upload_queue "
            "WHERE id = ? AND status = 'pending'",
            (record_id,),
        )
        row = cursor.fetchone()
        return self._to_record(row) if row else None

    def count(self) -> int:
        """Number of pending records."""
        cursor = self._execute(
            "count",
            "SELECT COUNT(*) AS n FROM upload_queue WHERE status = 'pending'",
        )
        return cursor.fetchone()["n"]

    def remove(self, record_id: str) -> None:
        """Delete one record by id. Removing an absent id is a no-op."""
        self._execute(
            "remove",
            "DELETE FROM upload_queue WHERE id = ?",
            (record_id,),
        )

    def clear(self) -> None:
        """Remove every record, pending and dead-lettered."""
        self._execute("clear", "DELETE FROM upload_queue")

    def record_rejection(self, record_id: str, error: str) -> int:
        """Count a permanent rejection of a record by the server.

        Args:
            record_id: Queue record id
            error: Error reported for the rejection

        Returns:
            The record's rejection count after the increment (0 if absent)
        """
        self._execute(
            "record_rejection",
            """
            UPDATE upload_queue
            SET rejections = rejections + 1, error = ?
            WHERE id = ? AND status = 'pending'
            """,
            (error, record_id),
        )
        cursor = self._execute(
            "record_rejection",
            "SELECT rejections FROM upload_queue WHERE id = ?",
            (record_id,),
        )
        row = cursor.fetchone()
        return row["rejections"] if row else 0

    def dead_letter(self, record_id: str, error: str) -> None:
        """Move a record out of the pending queue into the failed state."""
        self._execute(
            "dead_letter",
            """
            UPDATE upload_queue
            SET status = 'failed', error = ?, failed_at = ?
            WHERE id = ?
            """,
            (error, datetime.now(timezone.utc).isoformat(), record_id),
        )

    def list_failed(self) -> list[tuple[CaptureRecord, str | None]]:
        """Return dead-lettered records with their last error, oldest first."""
        cursor = self._execute(
            "list_failed",
            """
            SELECT id, payload, created_at, error FROM upload_queue
            WHERE status = 'failed'
            ORDER BY seq ASC
            """,
        )
        return [(self._to_record(row), row["error"]) for row in cursor.fetchall()]

    def get_stats(self) -> dict[str, int]:
        """Get queue statistics.

        Returns:
            Dictionary with counts by status
        """
        cursor = self._execute(
            "get_stats",
            """
            SELECT status, COUNT(*) as count
            FROM upload_queue
            GROUP BY status
            """,
        )

        stats = {"pending": 0, "failed": 0, "total": 0}
        for row in cursor.fetchall():
            stats[row["status"]] = row["count"]
            stats["total"] += row["count"]

        return stats

    def cleanup_old(self, days: int = 7) -> int:
        """Remove dead-lettered records that failed more than N days ago.

        Returns:
            Number of records removed
        """
        cutoff = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()
        cursor = self._execute(
            "cleanup_old",
            """
            DELETE FROM upload_queue
            WHERE status = 'failed' AND failed_at < ?
            """,
            (cutoff,),
        )
        return cursor.rowcount

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __enter__(self) -> "UploadQueue":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
