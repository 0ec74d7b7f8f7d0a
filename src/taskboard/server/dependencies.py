"""Dependency helpers shared across FastAPI routes."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from functools import lru_cache
from pathlib import Path
from typing import Optional, Union

from fastapi import Request

from taskboard.config import Config
from taskboard.tasks import JsonTaskStore, Task, TaskRepository, TaskService
from taskboard.tasks.filters import is_overdue
from taskboard.users import Identity, SessionRepository, User, UserRepository
from taskboard.users.auth import AuthService

from .schemas import TaskResponse, UserDetailResponse, UserResponse


@lru_cache(maxsize=1)
def get_config() -> Config:
    """Configuration resolved once per process (see Config.load)."""
    return Config.load()


@lru_cache(maxsize=1)
def get_task_store() -> Union[JsonTaskStore, TaskRepository]:
    """Singleton task store for the configured backend."""
    storage = get_config().storage
    if storage.backend == "json":
        return JsonTaskStore(Path(storage.tasks_file))
    return TaskRepository(Path(storage.db_path))


@lru_cache(maxsize=1)
def get_user_repository() -> UserRepository:
    """Singleton UserRepository."""
    return UserRepository(Path(get_config().storage.db_path))


@lru_cache(maxsize=1)
def get_session_repository() -> SessionRepository:
    """Singleton SessionRepository."""
    config = get_config()
    ttl_hours = config.auth.session_ttl_hours
    return SessionRepository(
        Path(config.storage.db_path),
        ttl=timedelta(hours=ttl_hours) if ttl_hours > 0 else None,
    )


@lru_cache(maxsize=1)
def get_task_service() -> TaskService:
    """Singleton TaskService."""
    return TaskService(
        get_task_store(),
        users=get_user_repository(),
        require_session=bool(get_config().auth.require_session),
    )


@lru_cache(maxsize=1)
def get_auth_service() -> AuthService:
    """Singleton AuthService."""
    auth = get_config().auth
    return AuthService(
        get_user_repository(),
        get_session_repository(),
        password_min_length=auth.password_min_length,
        admin_emails=auth.admin_emails,
        task_store=get_task_store(),
    )


def reset_dependencies() -> None:
    """Drop every cached singleton (configuration included)."""
    for factory in (
        get_config,
        get_task_store,
        get_user_repository,
        get_session_repository,
        get_task_service,
        get_auth_service,
    ):
        factory.cache_clear()


def get_session_token(request: Request) -> Optional[str]:
    return request.cookies.get(get_config().auth.session_cookie)


def get_identity(request: Request) -> Optional[Identity]:
    """Identity of the caller for this request, or None without a valid session."""
    return get_auth_service().resolve(get_session_token(request))


def serialize_task(task: Task, now: Optional[datetime] = None) -> TaskResponse:
    """Convert domain Task to API response."""
    return TaskResponse(
        id=task.id,
        title=task.title,
        description=task.description,
        assignee=task.assignee,
        priority=task.priority,
        deadline=task.deadline,
        categories=list(task.categories),
        completed=task.completed,
        status=task.status,
        overdue=is_overdue(task, now or datetime.now(timezone.utc)),
        owner_id=task.owner_id,
        owner_email=task.owner_email,
        created_at=task.created_at,
        updated_at=task.updated_at,
    )


def serialize_user(user: Union[User, Identity]) -> UserResponse:
    if isinstance(user, Identity):
        return UserResponse(id=user.user_id, email=user.email, role=user.role)
    return UserResponse(id=user.id, email=user.email, role=user.role)


def serialize_user_detail(user: User) -> UserDetailResponse:
    return UserDetailResponse(id=user.id, email=user.email, role=user.role, created_at=user.created_at)
