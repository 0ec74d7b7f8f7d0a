"""User and session persistence.

Both tables live in the same SQLite file as the tasks so that deleting a
user cascades to their sessions and tasks.
"""

from __future__ import annotations

import contextlib
import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from taskboard import database
from taskboard.exceptions import ConflictError, StoreError

from .models import Role, User

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    """Emails are compared case-insensitively."""
    return email.strip().lower()


class _SqliteRepository:
    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        try:
            database.initialize(self.db_path)
        except sqlite3.Error as exc:
            raise StoreError("Failed to initialize user storage") from exc

    @contextlib.contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = database.connect(self.db_path)
        try:
            yield conn
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as exc:
            raise StoreError("User storage failure") from exc
        finally:
            conn.close()

    @staticmethod
    def _now() -> str:
        # Fixed width so stored timestamps compare correctly as text
        return datetime.now(timezone.utc).isoformat(timespec="microseconds")


class UserRepository(_SqliteRepository):
    """SQLite-backed credential store."""

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            email=row["email"],
            role=Role(row["role"]),
            created_at=row["created_at"],
        )

    def create(self, email: str, password_hash: str, role: Role = Role.USER) -> User:
        email = normalize_email(email)
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    "INSERT INTO users (email, password_hash, role, created_at) VALUES (?, ?, ?, ?)",
                    (email, password_hash, role.value, self._now()),
                )
                row = conn.execute("SELECT * FROM users WHERE id = ?", (cursor.lastrowid,)).fetchone()
        except sqlite3.IntegrityError as exc:
            raise ConflictError("Email already registered") from exc
        logger.info("User created id=%s role=%s", row["id"], role.value)
        return self._row_to_user(row)

    def get(self, user_id: int) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return self._row_to_user(row) if row else None

    def find_credentials(self, email: str) -> Optional[Tuple[User, str]]:
        """Return the user and their password hash, for login only."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ?", (normalize_email(email),)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_user(row), row["password_hash"]

    def list(self) -> List[User]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY id ASC").fetchall()
        return [self._row_to_user(row) for row in rows]

    def emails_by_id(self, user_ids: Iterable[int]) -> Dict[int, str]:
        ids = sorted(set(user_ids))
        if not ids:
            return {}
        placeholders = ", ".join("?" for _ in ids)
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT id, email FROM users WHERE id IN ({placeholders})", ids
            ).fetchall()
        return {row["id"]: row["email"] for row in rows}

    def delete(self, user_id: int) -> bool:
        """Delete a user; their sessions and SQLite tasks go with them."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("User deleted id=%s", user_id)
        return deleted


class SessionRepository(_SqliteRepository):
    """Server-side session data keyed by the opaque cookie token.

    With a ``ttl``, sessions older than it no longer resolve and are purged
    whenever a new session is created.
    """

    def __init__(self, db_path: Path | str, ttl: Optional[timedelta] = None):
        super().__init__(db_path)
        self.ttl = ttl

    def _cutoff(self) -> str:
        return (datetime.now(timezone.utc) - self.ttl).isoformat(timespec="microseconds")

    def create(self, token: str, user_id: int) -> None:
        with self._connect() as conn:
            if self.ttl:
                purged = conn.execute("DELETE FROM sessions WHERE created_at < ?", (self._cutoff(),)).rowcount
                if purged:
                    logger.info("Expired sessions purged count=%s", purged)
            conn.execute(
                "INSERT INTO sessions (token, user_id, created_at) VALUES (?, ?, ?)",
                (token, user_id, self._now()),
            )

    def resolve(self, token: str) -> Optional[User]:
        query = """
            SELECT users.* FROM sessions
            JOIN users ON users.id = sessions.user_id
            WHERE sessions.token = ?
        """
        params: List[str] = [token]
        if self.ttl:
            query += " AND sessions.created_at >= ?"
            params.append(self._cutoff())
        with self._connect() as conn:
            row = conn.execute(query, params).fetchone()
        return UserRepository._row_to_user(row) if row else None

    def delete(self, token: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM sessions WHERE token = ?", (token,))
            return cursor.rowcount > 0
