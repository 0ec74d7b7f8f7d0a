from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterator, List, Optional

from taskboard import database
from taskboard.exceptions import NotFoundError, StoreError, ValidationError

from .models import NewTask, Priority, Task, TaskPatch

logger = logging.getLogger(__name__)

Authorizer = Callable[[Task], None]


class TaskRepository:
    """SQLite-backed task store. Every task belongs to a user."""

    requires_owner = True

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        try:
            database.initialize(self.db_path)
        except sqlite3.Error as exc:
            raise StoreError("Failed to initialize task storage") from exc
        logger.info("TaskRepository ready db=%s", self.db_path)

    @contextlib.contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = database.connect(self.db_path)
        try:
            yield conn
        except sqlite3.Error as exc:
            raise StoreError("Task storage failure") from exc
        finally:
            conn.close()

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=row["id"],
            title=row["title"],
            created_at=row["created_at"],
            description=row["description"],
            assignee=row["assignee"],
            priority=Priority(row["priority"]),
            deadline=row["deadline"],
            categories=json.loads(row["categories_json"] or "[]"),
            completed=bool(row["completed"]),
            owner_id=row["owner_id"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _column_value(name: str, value: Any) -> Any:
        if name == "categories":
            return json.dumps(value, ensure_ascii=False)
        if name == "priority":
            return value.value
        if name == "completed":
            return 1 if value else 0
        return value

    def _fetch(self, conn: sqlite3.Connection, task_id: int) -> Task:
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        if row is None:
            raise NotFoundError("Task", task_id)
        return self._row_to_task(row)

    def list(self, owner_id: Optional[int] = None) -> List[Task]:
        """Newest first, optionally restricted to one owner."""
        with self._connect() as conn:
            if owner_id is None:
                rows = conn.execute("SELECT * FROM tasks ORDER BY id DESC").fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM tasks WHERE owner_id = ? ORDER BY id DESC", (owner_id,)
                ).fetchall()
        return [self._row_to_task(row) for row in rows]

    def get(self, task_id: int) -> Optional[Task]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return self._row_to_task(row) if row else None

    def create(self, new_task: NewTask, owner_id: Optional[int] = None) -> Task:
        if owner_id is None:
            raise ValueError("owner_id is required for the SQLite task store")
        now = self._now()
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO tasks (title, description, assignee, priority, deadline,
                                   categories_json, completed, owner_id, created_at)
                VALUES (?, ?, ?, ?, ?, ?, 0, ?, ?)
                """,
                (
                    new_task.title,
                    new_task.description,
                    new_task.assignee,
                    new_task.priority.value,
                    new_task.deadline,
                    json.dumps(new_task.categories, ensure_ascii=False),
                    owner_id,
                    now,
                ),
            )
            task = self._fetch(conn, cursor.lastrowid)
        logger.info("Task created id=%s owner=%s", task.id, owner_id)
        return task

    def update(self, task_id: int, patch: TaskPatch, authorize: Optional[Authorizer] = None) -> Task:
        """Apply ``patch`` in one transaction.

        ``authorize`` sees the current row inside the transaction and may raise
        to roll it back.
        """
        values = patch.values()
        with self._connect() as conn, database.transaction(conn):
            current = self._fetch(conn, task_id)
            if authorize is not None:
                authorize(current)

            assignments = [f"{self._column_name(name)} = ?" for name in values]
            params: List[Any] = [self._column_value(name, value) for name, value in values.items()]
            assignments.append("updated_at = ?")
            params.append(self._now())
            params.append(task_id)
            conn.execute(f"UPDATE tasks SET {', '.join(assignments)} WHERE id = ?", params)
            return self._fetch(conn, task_id)

    @staticmethod
    def _column_name(name: str) -> str:
        return "categories_json" if name == "categories" else name

    def delete(self, task_id: int, authorize: Optional[Authorizer] = None) -> Task:
        with self._connect() as conn, database.transaction(conn):
            current = self._fetch(conn, task_id)
            if authorize is not None:
                authorize(current)
            conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        logger.info("Task deleted id=%s", task_id)
        return current

    def delete_by_owner(self, owner_id: int) -> int:
        # Normally done by the users(id) ON DELETE CASCADE already.
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM tasks WHERE owner_id = ?", (owner_id,))
            return cursor.rowcount

    def replace_all(self, tasks: List[Task]) -> int:
        """Overwrite every task in one transaction (used by import).

        Each record must name an existing user as its owner.
        """
        if any(task.owner_id is None for task in tasks):
            raise ValidationError("Every imported task needs an ownerId", invalid_fields=["ownerId"])
        rows = [
            (
                task.id,
                task.title,
                task.description,
                task.assignee,
                task.priority.value,
                task.deadline,
                json.dumps(task.categories, ensure_ascii=False),
                1 if task.completed else 0,
                task.owner_id,
                task.created_at,
                task.updated_at,
            )
            for task in tasks
        ]
        with self._connect() as conn, database.transaction(conn):
            conn.execute("DELETE FROM tasks")
            try:
                conn.executemany(
                    """
                    INSERT INTO tasks (id, title, description, assignee, priority, deadline,
                                       categories_json, completed, owner_id, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    rows,
                )
            except sqlite3.IntegrityError as exc:
                raise ValidationError("Imported tasks reference unknown owners", invalid_fields=["ownerId"]) from exc
        logger.info("Tasks replaced count=%s", len(rows))
        return len(rows)
