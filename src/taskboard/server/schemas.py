"""Pydantic schemas for the FastAPI server."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from taskboard.tasks import Priority, TaskStatus
from taskboard.users import Role


class CamelModel(BaseModel):
    """Serialized with camelCase keys, as the browser client expects."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True)


class TaskResponse(CamelModel):
    """Serialized task."""

    id: int
    title: str
    description: Optional[str] = None
    assignee: Optional[str] = None
    priority: Priority
    deadline: Optional[str] = None
    categories: List[str] = Field(default_factory=list)
    completed: bool
    status: TaskStatus
    overdue: bool = False
    owner_id: Optional[int] = None
    owner_email: Optional[str] = Field(default=None, description="Only filled for admin listings")
    created_at: str
    updated_at: Optional[str] = None


class CredentialsRequest(BaseModel):
    """Request body for register and login.

    Both fields are optional here so that missing values are reported by the
    auth service with the same 400/401 responses as invalid ones.
    """

    email: Optional[str] = Field(default=None, max_length=320)
    password: Optional[str] = Field(default=None, max_length=1024)


class UserResponse(CamelModel):
    """Public view of an account."""

    id: int
    email: str
    role: Role


class UserDetailResponse(UserResponse):
    """Account as listed for admins."""

    created_at: str


class UserEnvelope(BaseModel):
    """``{"user": {...}}`` wrapper used by login and /auth/me."""

    user: UserResponse


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    status: str
    timestamp: str
