"""Task storage, validation and authorization shared by the server and the CLI."""

from .file_store import JsonTaskStore
from .models import UNSET, NewTask, Priority, Task, TaskPatch, TaskStatus
from .repository import TaskRepository
from .service import TaskService

__all__ = [
    "JsonTaskStore",
    "NewTask",
    "Priority",
    "Task",
    "TaskPatch",
    "TaskRepository",
    "TaskService",
    "TaskStatus",
    "UNSET",
]
