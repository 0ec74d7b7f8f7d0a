"""List filtering shared by the API and the CLI."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Iterable, List, Optional

from taskboard.exceptions import ValidationError

from .models import Task, TaskStatus

STATUS_VALUES = tuple(s.value for s in TaskStatus)


def matches_query(task: Task, query: str) -> bool:
    """Case-insensitive substring match on title, description, assignee and categories."""
    needle = query.lower()
    haystack = [task.title, task.description or "", task.assignee or "", *task.categories]
    return any(needle in text.lower() for text in haystack)


def filter_tasks(
    tasks: Iterable[Task],
    status: Optional[str] = None,
    query: Optional[str] = None,
) -> List[Task]:
    if status is not None and status not in STATUS_VALUES:
        raise ValidationError(
            f"Invalid status filter: {status!r} (allowed: {', '.join(STATUS_VALUES)})",
            invalid_fields=["status"],
        )
    query = (query or "").strip()

    result = []
    for task in tasks:
        if status is not None and task.status.value != status:
            continue
        if query and not matches_query(task, query):
            continue
        result.append(task)
    return result


def _parse_deadline(value: str) -> Optional[datetime]:
    try:
        if "T" in value or " " in value:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        else:
            day = date.fromisoformat(value)
            # A date-only deadline lasts until the end of that day.
            parsed = datetime(day.year, day.month, day.day, 23, 59, 59)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_overdue(task: Task, now: Optional[datetime] = None) -> bool:
    """An open task whose deadline has passed."""
    if task.completed or not task.deadline:
        return False
    deadline = _parse_deadline(task.deadline)
    if deadline is None:
        return False
    return deadline < (now or datetime.now(timezone.utc))
