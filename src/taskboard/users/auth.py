"""Registration, login sessions and user administration.

Design Reference: DESIGN.md (credential store / sessions)
Related classes:
  - UserRepository, SessionRepository (repository.py)
  - tasks.policy: consumes the Identity established here
"""

from __future__ import annotations

import logging
import re
import secrets
from typing import Iterable, List, Optional, Tuple

from werkzeug.security import check_password_hash, generate_password_hash

from taskboard.exceptions import AuthError, NotFoundError, SelfDeletionError, ValidationError
from taskboard.tasks.policy import ensure_admin

from .models import Identity, Role, User
from .repository import SessionRepository, UserRepository, normalize_email

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
INVALID_CREDENTIALS = "Invalid credentials"


def generate_token() -> str:
    """Opaque session token for the cookie."""
    return secrets.token_urlsafe(32)


class AuthService:
    """Credential checks and session lifecycle."""

    def __init__(
        self,
        users: UserRepository,
        sessions: SessionRepository,
        password_min_length: int = 6,
        admin_emails: Iterable[str] = (),
        task_store=None,
    ):
        self.users = users
        self.sessions = sessions
        self.password_min_length = password_min_length
        self.admin_emails = {normalize_email(e) for e in admin_emails}
        # Stores that do not cascade on their own (the JSON file) are purged explicitly.
        self.task_store = task_store

    def register(self, email: Optional[str], password: Optional[str]) -> User:
        if not email or not isinstance(email, str) or not password or not isinstance(password, str):
            raise ValidationError("Email and password are required")
        email = normalize_email(email)
        if not EMAIL_PATTERN.match(email):
            raise ValidationError("Invalid email format", invalid_fields=["email"])
        if len(password) < self.password_min_length:
            raise ValidationError(
                f"Password must be at least {self.password_min_length} characters",
                invalid_fields=["password"],
            )

        role = Role.ADMIN if email in self.admin_emails else Role.USER
        return self.users.create(email, generate_password_hash(password), role)

    def login(self, email: Optional[str], password: Optional[str]) -> Tuple[Identity, str]:
        """Check credentials and open a session.

        Unknown email and wrong password fail with the same message.

        Returns:
            (identity, session token)
        """
        if not email or not password:
            raise AuthError(INVALID_CREDENTIALS)
        found = self.users.find_credentials(email)
        if found is None:
            raise AuthError(INVALID_CREDENTIALS)
        user, password_hash = found
        if not check_password_hash(password_hash, password):
            raise AuthError(INVALID_CREDENTIALS)

        token = generate_token()
        self.sessions.create(token, user.id)
        logger.info("User logged in id=%s", user.id)
        return Identity(user_id=user.id, email=user.email, role=user.role), token

    def logout(self, token: Optional[str]) -> None:
        if token:
            self.sessions.delete(token)

    def resolve(self, token: Optional[str]) -> Optional[Identity]:
        if not token:
            return None
        user = self.sessions.resolve(token)
        if user is None:
            return None
        return Identity(user_id=user.id, email=user.email, role=user.role)

    def list_users(self, identity: Optional[Identity]) -> List[User]:
        ensure_admin(identity)
        return self.users.list()

    def delete_user(self, identity: Optional[Identity], user_id: int) -> None:
        admin = ensure_admin(identity)
        if admin.user_id == user_id:
            raise SelfDeletionError("You cannot delete your own account")
        if self.users.get(user_id) is None:
            raise NotFoundError("User", user_id)

        if self.task_store is not None and not getattr(self.task_store, "requires_owner", False):
            removed = self.task_store.delete_by_owner(user_id)
            logger.info("Removed %s tasks of user id=%s", removed, user_id)
        if not self.users.delete(user_id):
            raise NotFoundError("User", user_id)
