"""Request payload validation for tasks.

Create payloads are normalized (trimmed, defaults filled in). Update payloads
are whitelisted first and then checked field by field; nothing is merged
unless every field passes.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Set

from taskboard.exceptions import ValidationError

from .models import NewTask, Priority, Task, TaskPatch

MUTABLE_FIELDS = (
    "title",
    "description",
    "assignee",
    "priority",
    "deadline",
    "categories",
    "completed",
)
PRIORITY_VALUES = tuple(p.value for p in Priority)


def _ensure_encodable(value: str, name: str) -> str:
    # json.loads accepts lone surrogate escapes such as "\ud800", which cannot be stored
    try:
        value.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise ValidationError(f"Field '{name}' contains invalid characters", invalid_fields=[name]) from exc
    return value


def _clean_text(value: Any, name: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"Field '{name}' must be a string", invalid_fields=[name])
    value = _ensure_encodable(value, name).strip()
    return value or None


def _clean_title(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Title is required", invalid_fields=["title"])
    return _ensure_encodable(value, "title").strip()


def _clean_deadline(value: Any) -> Optional[str]:
    value = _clean_text(value, "deadline")
    if value is None:
        return None
    try:
        if "T" in value or " " in value:
            datetime.fromisoformat(value.replace("Z", "+00:00"))
        else:
            date.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError(
            f"Invalid deadline: {value!r} (expected ISO-8601 date or datetime)",
            invalid_fields=["deadline"],
        ) from exc
    return value


def normalize_categories(value: Any) -> List[str]:
    """Return categories as a list of trimmed, non-empty labels.

    A comma-separated string is accepted and split.
    """
    if value is None:
        return []
    if isinstance(value, str):
        items: List[Any] = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = list(value)
    else:
        raise ValidationError("Field 'categories' must be a list of strings", invalid_fields=["categories"])

    categories: List[str] = []
    for item in items:
        if not isinstance(item, str):
            raise ValidationError("Field 'categories' must be a list of strings", invalid_fields=["categories"])
        item = _ensure_encodable(item, "categories").strip()
        if item:
            categories.append(item)
    return categories


def normalize_priority(value: Any) -> Priority:
    """Lenient priority parsing used on create: unknown values become MEDIUM."""
    if isinstance(value, str):
        try:
            return Priority(value.strip().lower())
        except ValueError:
            pass
    return Priority.MEDIUM


def build_new_task(payload: Any) -> NewTask:
    """Validate and normalize a create payload.

    Unknown keys are ignored, ``completed`` is always false for new tasks.
    """
    if not isinstance(payload, dict) or not payload:
        raise ValidationError("Missing task data")

    return NewTask(
        title=_clean_title(payload.get("title")),
        description=_clean_text(payload.get("description"), "description"),
        assignee=_clean_text(payload.get("assignee"), "assignee"),
        priority=normalize_priority(payload.get("priority")),
        deadline=_clean_deadline(payload.get("deadline")),
        categories=normalize_categories(payload.get("categories")),
    )


def build_patch(payload: Any) -> TaskPatch:
    """Validate an update payload into a TaskPatch.

    Raises:
        ValidationError: unknown keys (all of them are listed, together with
            the allowed set) or an invalid value for a known key.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Update payload must be a JSON object", allowed_fields=MUTABLE_FIELDS)

    invalid = [key for key in payload if key not in MUTABLE_FIELDS]
    if invalid:
        raise ValidationError(
            "Invalid updates! Contains forbidden fields.",
            invalid_fields=invalid,
            allowed_fields=MUTABLE_FIELDS,
        )

    patch = TaskPatch()
    if "title" in payload:
        patch.title = _clean_title(payload["title"])
    if "description" in payload:
        patch.description = _clean_text(payload["description"], "description")
    if "assignee" in payload:
        patch.assignee = _clean_text(payload["assignee"], "assignee")
    if "priority" in payload:
        value = payload["priority"]
        if not isinstance(value, str) or value not in PRIORITY_VALUES:
            raise ValidationError(
                f"Invalid priority: {value!r} (allowed: {', '.join(PRIORITY_VALUES)})",
                invalid_fields=["priority"],
            )
        patch.priority = Priority(value)
    if "deadline" in payload:
        patch.deadline = _clean_deadline(payload["deadline"])
    if "categories" in payload:
        patch.categories = normalize_categories(payload["categories"])
    if "completed" in payload:
        if not isinstance(payload["completed"], bool):
            raise ValidationError("Field 'completed' must be a boolean", invalid_fields=["completed"])
        patch.completed = payload["completed"]
    return patch


def _check_int(doc: Dict[str, Any], key: str, index: int, required: bool) -> None:
    value = doc.get(key)
    if value is None and not required:
        return
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(f"Record {index}: '{key}' must be a positive integer", invalid_fields=[key])


def build_imported_tasks(documents: Any) -> List[Task]:
    """Validate an exported collection before it replaces the stored one.

    Each record keeps its id, completion flag, owner and timestamps, and its
    text fields go through the same rules as a create payload.
    """
    if not isinstance(documents, list):
        raise ValidationError("Import must be a JSON array of tasks")

    now = datetime.now(timezone.utc).isoformat()
    tasks: List[Task] = []
    seen: Set[int] = set()
    for index, doc in enumerate(documents):
        if not isinstance(doc, dict):
            raise ValidationError(f"Record {index} is not a JSON object")
        _check_int(doc, "id", index, required=True)
        _check_int(doc, "ownerId", index, required=False)
        if doc["id"] in seen:
            raise ValidationError(f"Duplicate task id {doc['id']}", invalid_fields=["id"])
        seen.add(doc["id"])

        fields = build_new_task(doc)
        task = Task.from_document(doc)
        task.title = fields.title
        task.description = fields.description
        task.assignee = fields.assignee
        task.priority = fields.priority
        task.deadline = fields.deadline
        task.categories = fields.categories
        if not isinstance(doc.get("createdAt"), str) or not doc["createdAt"]:
            task.created_at = now
        if not isinstance(task.updated_at, str):
            task.updated_at = None
        tasks.append(task)
    return tasks
