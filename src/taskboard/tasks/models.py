from __future__ import annotations

from dataclasses import dataclass, field, fields as dataclass_fields
from enum import Enum
from typing import Any, Dict, List, Optional

UNSET: Any = object()


class Priority(str, Enum):
    """Task priority. Anything else is normalized to MEDIUM on create."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskStatus(str, Enum):
    """Completion flag as the browser client names it."""

    ACTIVE = "active"
    COMPLETED = "completed"


@dataclass(slots=True)
class Task:
    """A persisted task."""

    id: int
    title: str
    created_at: str
    description: Optional[str] = None
    assignee: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    deadline: Optional[str] = None  # ISO date or datetime
    categories: List[str] = field(default_factory=list)
    completed: bool = False
    owner_id: Optional[int] = None  # None only for anonymous tasks in the JSON file
    updated_at: Optional[str] = None
    owner_email: Optional[str] = None  # filled for admin listings, never persisted

    @property
    def status(self) -> TaskStatus:
        return TaskStatus.COMPLETED if self.completed else TaskStatus.ACTIVE

    def to_document(self) -> Dict[str, Any]:
        """Serialize for the JSON file. Empty optional fields are omitted."""
        doc: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "priority": self.priority.value,
            "completed": self.completed,
            "createdAt": self.created_at,
        }
        if self.description is not None:
            doc["description"] = self.description
        if self.assignee is not None:
            doc["assignee"] = self.assignee
        if self.deadline is not None:
            doc["deadline"] = self.deadline
        if self.categories:
            doc["categories"] = list(self.categories)
        if self.owner_id is not None:
            doc["ownerId"] = self.owner_id
        if self.updated_at is not None:
            doc["updatedAt"] = self.updated_at
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Task":
        """Read a record written by ``to_document`` (or by older clients).

        Older documents may carry ``status`` instead of ``completed`` and a
        comma-joined ``categories`` string.
        """
        try:
            priority = Priority(doc.get("priority", Priority.MEDIUM.value))
        except ValueError:
            priority = Priority.MEDIUM

        if "completed" in doc:
            completed = bool(doc["completed"])
        else:
            completed = doc.get("status") == TaskStatus.COMPLETED.value

        categories = doc.get("categories") or []
        if isinstance(categories, str):
            categories = [c.strip() for c in categories.split(",") if c.strip()]

        return cls(
            id=int(doc["id"]),
            title=str(doc.get("title", "")),
            created_at=doc.get("createdAt", ""),
            description=doc.get("description"),
            assignee=doc.get("assignee"),
            priority=priority,
            deadline=doc.get("deadline"),
            categories=list(categories),
            completed=completed,
            owner_id=doc.get("ownerId"),
            updated_at=doc.get("updatedAt"),
        )


@dataclass(slots=True)
class NewTask:
    """Validated fields for a task that has not been stored yet."""

    title: str
    description: Optional[str] = None
    assignee: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    deadline: Optional[str] = None
    categories: List[str] = field(default_factory=list)


@dataclass(slots=True)
class TaskPatch:
    """Partial update. Fields left as UNSET are not touched."""

    title: Any = UNSET
    description: Any = UNSET
    assignee: Any = UNSET
    priority: Any = UNSET
    deadline: Any = UNSET
    categories: Any = UNSET
    completed: Any = UNSET

    def fields(self) -> List[str]:
        return [f.name for f in dataclass_fields(self) if getattr(self, f.name) is not UNSET]

    def values(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.fields()}

    def apply(self, task: Task) -> None:
        """Shallow-merge the set fields onto ``task``."""
        for name, value in self.values().items():
            setattr(task, name, value)
