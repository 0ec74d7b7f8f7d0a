"""Task endpoints."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional

from fastapi import Body, Depends, FastAPI, Query

from taskboard.exceptions import StoreError, TaskboardError
from taskboard.users import Identity

from ..dependencies import get_identity, get_task_service, serialize_task
from ..schemas import TaskResponse

logger = logging.getLogger(__name__)


def register_task_routes(app: FastAPI) -> None:
    """Register task CRUD endpoints."""

    @app.get("/tasks", response_model=List[TaskResponse])
    async def list_tasks(
        status: Optional[str] = Query(default=None, description="active | completed"),
        q: Optional[str] = Query(default=None, description="Search in title, description, assignee, categories"),
        identity: Optional[Identity] = Depends(get_identity),
    ) -> List[TaskResponse]:
        """List visible tasks, newest first."""
        service = get_task_service()
        try:
            tasks = await asyncio.to_thread(service.list, identity, status, q)
            return [serialize_task(task) for task in tasks]
        except TaskboardError:
            raise
        except Exception as exc:
            logger.exception("Failed to list tasks: %s", exc)
            raise StoreError("Failed to list tasks") from exc

    @app.get("/tasks/{task_id}", response_model=TaskResponse)
    async def get_task(task_id: int, identity: Optional[Identity] = Depends(get_identity)) -> TaskResponse:
        service = get_task_service()
        try:
            task = await asyncio.to_thread(service.get, identity, task_id)
            return serialize_task(task)
        except TaskboardError:
            raise
        except Exception as exc:
            logger.exception("Failed to get task %s: %s", task_id, exc)
            raise StoreError("Failed to get task") from exc

    @app.post("/tasks", response_model=TaskResponse, status_code=201)
    async def create_task(
        payload: Any = Body(default=None),
        identity: Optional[Identity] = Depends(get_identity),
    ) -> TaskResponse:
        """Create a task owned by the caller."""
        service = get_task_service()
        try:
            task = await asyncio.to_thread(service.create, identity, payload)
            return serialize_task(task)
        except TaskboardError:
            raise
        except Exception as exc:
            logger.exception("Failed to create task: %s", exc)
            raise StoreError("Failed to create task") from exc

    @app.put("/tasks/{task_id}", response_model=TaskResponse)
    async def update_task(
        task_id: int,
        payload: Any = Body(default=None),
        identity: Optional[Identity] = Depends(get_identity),
    ) -> TaskResponse:
        """Partially update a task (whitelisted fields only)."""
        service = get_task_service()
        try:
            task = await asyncio.to_thread(service.update, identity, task_id, payload)
            return serialize_task(task)
        except TaskboardError:
            raise
        except Exception as exc:
            logger.exception("Failed to update task %s: %s", task_id, exc)
            raise StoreError("Failed to update task") from exc

    @app.delete("/tasks/{task_id}", response_model=TaskResponse)
    async def delete_task(task_id: int, identity: Optional[Identity] = Depends(get_identity)) -> TaskResponse:
        """Delete a task and return the removed record."""
        service = get_task_service()
        try:
            task = await asyncio.to_thread(service.delete, identity, task_id)
            return serialize_task(task)
        except TaskboardError:
            raise
        except Exception as exc:
            logger.exception("Failed to delete task %s: %s", task_id, exc)
            raise StoreError("Failed to delete task") from exc
