"""Task use cases: validation, authorization and storage in one place.

Both stores (``JsonTaskStore`` and ``TaskRepository``) expose the same
methods, so the service does not care which one it was given.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Union

from taskboard.exceptions import AuthError, NotFoundError
from taskboard.users.models import Identity
from taskboard.users.repository import UserRepository

from .file_store import JsonTaskStore
from .filters import filter_tasks
from .models import Task
from .policy import ensure_can_access
from .repository import TaskRepository
from .validation import build_new_task, build_patch

logger = logging.getLogger(__name__)

TaskStore = Union[JsonTaskStore, TaskRepository]


class TaskService:
    """CRUD on tasks on behalf of a caller identity."""

    def __init__(
        self,
        store: TaskStore,
        users: Optional[UserRepository] = None,
        require_session: bool = True,
    ):
        self.store = store
        self.users = users
        self.require_session = require_session or store.requires_owner

    def _check_session(self, identity: Optional[Identity]) -> None:
        if identity is None and self.require_session:
            raise AuthError("Not authenticated")

    def _attach_owner_emails(self, tasks: List[Task]) -> None:
        if self.users is None:
            return
        emails = self.users.emails_by_id(t.owner_id for t in tasks if t.owner_id is not None)
        for task in tasks:
            if task.owner_id is not None:
                task.owner_email = emails.get(task.owner_id)

    def _for_caller(self, identity: Optional[Identity], tasks: List[Task]) -> List[Task]:
        """Admins get owner emails on every record they receive."""
        if identity is not None and identity.is_admin:
            self._attach_owner_emails(tasks)
        return tasks

    def list(
        self,
        identity: Optional[Identity],
        status: Optional[str] = None,
        query: Optional[str] = None,
    ) -> List[Task]:
        """Tasks visible to ``identity``, newest first.

        Admins see everything (with owner emails), users see their own tasks,
        anonymous callers see the unowned ones.
        """
        self._check_session(identity)
        if identity is None:
            tasks = [t for t in self.store.list() if t.owner_id is None]
        elif identity.is_admin:
            tasks = self.store.list()
        else:
            tasks = self.store.list(owner_id=identity.user_id)

        tasks = filter_tasks(tasks, status=status, query=query)
        return self._for_caller(identity, tasks)

    def get(self, identity: Optional[Identity], task_id: int) -> Task:
        self._check_session(identity)
        task = self.store.get(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        ensure_can_access(identity, task)
        return self._for_caller(identity, [task])[0]

    def create(self, identity: Optional[Identity], payload: Any) -> Task:
        self._check_session(identity)
        new_task = build_new_task(payload)
        owner_id = identity.user_id if identity is not None else None
        task = self.store.create(new_task, owner_id=owner_id)
        return self._for_caller(identity, [task])[0]

    def update(self, identity: Optional[Identity], task_id: int, payload: Any) -> Task:
        """Validate the whole payload, then merge it if the caller may modify the task."""
        self._check_session(identity)
        patch = build_patch(payload)
        task = self.store.update(task_id, patch, authorize=lambda current: ensure_can_access(identity, current))
        logger.info("Task updated id=%s fields=%s", task_id, patch.fields())
        return self._for_caller(identity, [task])[0]

    def delete(self, identity: Optional[Identity], task_id: int) -> Task:
        self._check_session(identity)
        removed = self.store.delete(task_id, authorize=lambda current: ensure_can_access(identity, current))
        return self._for_caller(identity, [removed])[0]
