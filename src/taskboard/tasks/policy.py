"""Owner-or-admin authorization.

The decisions are pure functions of the caller identity and the task owner.
``None`` stands for an anonymous caller (allowed only when the server runs
without mandatory sessions).
"""

from __future__ import annotations

from typing import Optional

from taskboard.exceptions import AuthError, ForbiddenError
from taskboard.users.models import Identity

from .models import Task


def can_access(identity: Optional[Identity], task: Task) -> bool:
    """May ``identity`` read, update or delete ``task``?"""
    if identity is not None and identity.is_admin:
        return True
    if task.owner_id is None:
        return True
    if identity is None:
        return False
    return task.owner_id == identity.user_id


def ensure_can_access(identity: Optional[Identity], task: Task) -> None:
    if not can_access(identity, task):
        raise ForbiddenError("You are not allowed to access this task")


def ensure_admin(identity: Optional[Identity]) -> Identity:
    if identity is None:
        raise AuthError("Not authenticated")
    if not identity.is_admin:
        raise ForbiddenError("Admin role required")
    return identity
