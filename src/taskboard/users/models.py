from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """User role. Only ADMIN may manage other users or see every task."""

    USER = "user"
    ADMIN = "admin"


@dataclass(slots=True)
class User:
    """A registered account. The password hash stays inside the repository."""

    id: int
    email: str
    role: Role
    created_at: str


@dataclass(frozen=True, slots=True)
class Identity:
    """Who is making a request, as established by a login session."""

    user_id: int
    email: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN
