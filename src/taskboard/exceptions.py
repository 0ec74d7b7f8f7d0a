"""Taskboard error taxonomy.

Every error raised by the stores, the policy and the services derives from
``TaskboardError`` and knows which HTTP status it maps to. The server turns
them into JSON responses in one place (see ``taskboard.server.app``).

Design Reference: DESIGN.md (error handling)
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional


class TaskboardError(Exception):
    """Taskboard base error."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message}


class ValidationError(TaskboardError):
    """Malformed or forbidden input."""

    status_code = 400

    def __init__(
        self,
        message: str,
        invalid_fields: Optional[Iterable[str]] = None,
        allowed_fields: Optional[Iterable[str]] = None,
    ):
        super().__init__(message)
        self.invalid_fields = list(invalid_fields) if invalid_fields is not None else None
        self.allowed_fields = list(allowed_fields) if allowed_fields is not None else None

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.invalid_fields is not None:
            body["invalidFields"] = self.invalid_fields
        if self.allowed_fields is not None:
            body["allowedFields"] = self.allowed_fields
        return body


class NotFoundError(TaskboardError):
    """Unknown id."""

    status_code = 404

    def __init__(self, resource: str, resource_id: int):
        super().__init__(f"{resource} not found")
        self.resource = resource
        self.resource_id = resource_id

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "id": self.resource_id}


class ForbiddenError(TaskboardError):
    """Authorization denial."""

    status_code = 403


class AuthError(TaskboardError):
    """Bad credentials or missing session."""

    status_code = 401


class ConflictError(TaskboardError):
    """Duplicate registration."""

    status_code = 400


class SelfDeletionError(TaskboardError):
    """An admin tried to delete their own account."""

    status_code = 400


class StoreError(TaskboardError):
    """Underlying I/O or database failure.

    The message is meant for the client and stays generic; the cause is
    chained and logged server-side.
    """

    status_code = 500


class ConfigError(TaskboardError):
    """Invalid configuration."""

    pass
