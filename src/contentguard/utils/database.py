"""
SQLite store for users and their submission history.

Handles:
- User accounts (creation time, email verification)
- Submission outcomes (approved, rejected, pending review)

The moderation core only reads from this store; callers write outcomes
through their own submission-status updates.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Generator, Optional

from contentguard.utils.logging import get_logger

logger = get_logger(__name__)


class StoreError(Exception):
    """Raised when the submission store cannot be read or written."""


class SubmissionStatus(str, Enum):
    """Outcome of a past submission."""
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PENDING = "PENDING"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _to_timestamp(value: datetime | None) -> str:
    """Store timestamps as ISO-8601 UTC strings."""
    value = value or _now()
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _parse_timestamp(value: str | None) -> datetime | None:
    """Parse a stored timestamp back into an aware datetime."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class SubmissionStore:
    """
    SQLite-backed user and submission history.

    Each operation opens its own connection, so one store can be shared
    across threads (reputation lookups run in worker threads).
    """

    def __init__(self, db_path: str | Path = "data/contentguard.db") -> None:
        """
        Initialize the store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_database()
        logger.info("Submission store initialized at %s", self.db_path)

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Get a database connection with automatic cleanup.

        Yields:
            sqlite3.Connection: Database connection

        Raises:
            StoreError: If any database operation fails
        """
        try:
            conn = sqlite3.connect(str(self.db_path))
        except sqlite3.Error as e:
            logger.error("Database connection failed: %s", e)
            raise StoreError(f"cannot open {self.db_path}: {e}") from e

        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("Database error: %s", e)
            raise StoreError(str(e)) from e
        finally:
            conn.close()

    def _init_database(self) -> None:
        """Initialize database tables."""
        with self.get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    user_id TEXT PRIMARY KEY,
                    username TEXT,
                    created_at TEXT NOT NULL,
                    email_verified BOOLEAN DEFAULT FALSE
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS submissions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    status TEXT NOT NULL,
                    content_type TEXT DEFAULT 'wiki',
                    spam_score INTEGER,
                    action TEXT,
                    created_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_submissions_user
                ON submissions(user_id, created_at)
            """)

    # ==================== Users ====================

    def add_user(
        self,
        user_id: str,
        username: str | None = None,
        created_at: datetime | None = None,
        email_verified: bool = False,
    ) -> None:
        """
        Create or replace a user record.

        Args:
            user_id: Opaque user identifier
            username: Display name
            created_at: Account creation time (defaults to now)
            email_verified: Whether the email address was verified
        """
        with self.get_connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO users (user_id, username, created_at, email_verified)
                VALUES (?, ?, ?, ?)
                """,
                (user_id, username, _to_timestamp(created_at), email_verified),
            )

    def get_user(self, user_id: str) -> Optional[dict[str, Any]]:
        """
        Get a user's account record.

        Returns:
            dict | None: user_id, username, created_at (datetime), email_verified
        """
        with self.get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE user_id = ?", (user_id,)
            ).fetchone()

        if row is None:
            return None

        user = dict(row)
        user["created_at"] = _parse_timestamp(user["created_at"])
        user["email_verified"] = bool(user["email_verified"])
        return user

    def set_email_verified(self, user_id: str, verified: bool = True) -> bool:
        """Mark a user's email as verified. Returns False for unknown users."""
        with self.get_connection() as conn:
            cursor = conn.execute(
                "UPDATE users SET email_verified = ? WHERE user_id = ?",
                (verified, user_id),
            )
            return cursor.rowcount > 0

    # ==================== Submissions ====================

    def record_submission(
        self,
        user_id: str,
        status: SubmissionStatus | str,
        created_at: datetime | None = None,
        content_type: str = "wiki",
        spam_score: int | None = None,
        action: str | None = None,
    ) -> int:
        """
        Record a submission and its current status.

        Args:
            user_id: Submitting user
            status: APPROVED, REJECTED or PENDING
            created_at: Submission time (defaults to now)
            content_type: wiki, comment, user or person
            spam_score: Spam score at submission time
            action: Moderation action taken at submission time

        Returns:
            int: The new submission ID
        """
        status = SubmissionStatus(status)
        with self.get_connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO submissions (user_id, status, content_type, spam_score, action, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (user_id, status.value, content_type, spam_score, action, _to_timestamp(created_at)),
            )
            return int(cursor.lastrowid)

    def update_submission_status(self, submission_id: int, status: SubmissionStatus | str) -> bool:
        """Update a submission's status. Returns False if it does not exist."""
        status = SubmissionStatus(status)
        with self.get_connection() as conn:
            cursor = conn.execute(
                "UPDATE submissions SET status = ? WHERE id = ?",
                (status.value, submission_id),
            )
            return cursor.rowcount > 0

    def get_submissions(self, user_id: str) -> list[dict[str, Any]]:
        """
        Get every submission by a user, oldest first.

        Returns:
            list: dicts with id, status (SubmissionStatus), content_type,
                  spam_score, action and created_at (datetime)
        """
        with self.get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM submissions WHERE user_id = ? ORDER BY created_at, id",
                (user_id,),
            ).fetchall()

        submissions = []
        for row in rows:
            submission = dict(row)
            submission["status"] = SubmissionStatus(submission["status"])
            submission["created_at"] = _parse_timestamp(submission["created_at"])
            submissions.append(submission)
        return submissions

    def get_status_counts(self, user_id: str) -> dict[str, int]:
        """Count a user's submissions per status."""
        counts = {status.value: 0 for status in SubmissionStatus}
        with self.get_connection() as conn:
            rows = conn.execute(
                "SELECT status, COUNT(*) AS total FROM submissions WHERE user_id = ? GROUP BY status",
                (user_id,),
            ).fetchall()
        for row in rows:
            counts[row["status"]] = row["total"]
        return counts


# Global store instance
_store: Optional[SubmissionStore] = None


def get_database(db_path: str | Path = "data/contentguard.db") -> SubmissionStore:
    """
    Get the process-wide store instance.

    Args:
        db_path: Path to SQLite database file (only used on first call)

    Returns:
        SubmissionStore: Store instance
    """
    global _store
    if _store is None:
        _store = SubmissionStore(db_path)
    return _store
