"""Users, sessions and credentials."""

from .models import Identity, Role, User
from .repository import SessionRepository, UserRepository, normalize_email

__all__ = [
    "Identity",
    "Role",
    "SessionRepository",
    "User",
    "UserRepository",
    "normalize_email",
]
