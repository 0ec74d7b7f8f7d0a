"""JSON-file task store.

The whole collection lives in one pretty-printed JSON array. Every mutating
call reads the document, changes it in memory and rewrites it in full.

Mutations within one process are serialized by a lock, and the file is
replaced atomically (temp file + ``os.replace``). Separate processes writing
the same file are not coordinated: the last writer wins.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional

from taskboard.exceptions import NotFoundError, StoreError

from .models import NewTask, Task, TaskPatch

logger = logging.getLogger(__name__)

Authorizer = Callable[[Task], None]


class JsonTaskStore:
    """Task store backed by a single JSON document."""

    requires_owner = False

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._last_id = 0
        logger.info("JsonTaskStore ready path=%s", self.path)

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    def _read(self) -> List[Task]:
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise StoreError("Failed to read tasks") from exc

        if not content.strip():
            return []
        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as exc:
            raise StoreError("Failed to read tasks") from exc

        documents = parsed if isinstance(parsed, list) else [parsed]
        try:
            return [Task.from_document(doc) for doc in documents]
        except (KeyError, TypeError, ValueError) as exc:
            raise StoreError("Failed to read tasks") from exc

    def _write(self, tasks: List[Task]) -> None:
        payload = json.dumps([task.to_document() for task in tasks], ensure_ascii=False, indent=2)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        replaced = False
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self.path)
            replaced = True
        except (OSError, UnicodeError) as exc:
            raise StoreError("Failed to write tasks") from exc
        finally:
            if not replaced:
                with contextlib.suppress(FileNotFoundError):
                    os.unlink(tmp_name)

    @staticmethod
    def _find(tasks: List[Task], task_id: int) -> int:
        for index, task in enumerate(tasks):
            if task.id == task_id:
                return index
        raise NotFoundError("Task", task_id)

    def list(self, owner_id: Optional[int] = None) -> List[Task]:
        """Newest first. With ``owner_id``, only that owner's tasks plus unowned ones."""
        tasks = self._read()
        if owner_id is not None:
            tasks = [t for t in tasks if t.owner_id is None or t.owner_id == owner_id]
        return sorted(tasks, key=lambda t: t.id, reverse=True)

    def get(self, task_id: int) -> Optional[Task]:
        for task in self._read():
            if task.id == task_id:
                return task
        return None

    def create(self, new_task: NewTask, owner_id: Optional[int] = None) -> Task:
        with self._lock:
            tasks = self._read()
            max_id = max((t.id for t in tasks), default=0)
            task_id = max(max_id, self._last_id) + 1

            task = Task(
                id=task_id,
                title=new_task.title,
                created_at=self._now(),
                description=new_task.description,
                assignee=new_task.assignee,
                priority=new_task.priority,
                deadline=new_task.deadline,
                categories=list(new_task.categories),
                completed=False,
                owner_id=owner_id,
            )
            tasks.append(task)
            self._write(tasks)
            self._last_id = task_id
        logger.info("Task created id=%s owner=%s", task.id, owner_id)
        return task

    def update(self, task_id: int, patch: TaskPatch, authorize: Optional[Authorizer] = None) -> Task:
        """Merge ``patch`` onto the task and rewrite the file.

        ``authorize`` is called with the current record before anything changes
        and may raise to abort the update.
        """
        with self._lock:
            tasks = self._read()
            index = self._find(tasks, task_id)
            task = tasks[index]
            if authorize is not None:
                authorize(task)
            patch.apply(task)
            task.updated_at = self._now()
            self._write(tasks)
        return task

    def delete(self, task_id: int, authorize: Optional[Authorizer] = None) -> Task:
        with self._lock:
            tasks = self._read()
            index = self._find(tasks, task_id)
            if authorize is not None:
                authorize(tasks[index])
            removed = tasks.pop(index)
            self._last_id = max(self._last_id, removed.id)
            self._write(tasks)
        logger.info("Task deleted id=%s", task_id)
        return removed

    def delete_by_owner(self, owner_id: int) -> int:
        with self._lock:
            tasks = self._read()
            kept = [t for t in tasks if t.owner_id != owner_id]
            removed = len(tasks) - len(kept)
            if removed:
                self._last_id = max([self._last_id] + [t.id for t in tasks])
                self._write(kept)
        return removed

    def replace_all(self, tasks: List[Task]) -> int:
        """Overwrite the whole collection with ``tasks`` (used by import)."""
        ordered = sorted(tasks, key=lambda t: t.id)
        with self._lock:
            self._write(ordered)
            self._last_id = max([self._last_id] + [t.id for t in ordered])
        logger.info("Tasks replaced count=%s", len(ordered))
        return len(ordered)
