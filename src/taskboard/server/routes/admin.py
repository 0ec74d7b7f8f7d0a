"""User administration endpoints (admin role only)."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, Response

from taskboard.exceptions import StoreError, TaskboardError
from taskboard.users import Identity

from ..dependencies import get_auth_service, get_identity, serialize_user_detail
from ..schemas import UserDetailResponse

logger = logging.getLogger(__name__)


def register_admin_routes(app: FastAPI) -> None:
    """Register /admin endpoints."""

    @app.get("/admin/users", response_model=List[UserDetailResponse])
    async def list_users(identity: Optional[Identity] = Depends(get_identity)) -> List[UserDetailResponse]:
        service = get_auth_service()
        try:
            users = await asyncio.to_thread(service.list_users, identity)
            return [serialize_user_detail(user) for user in users]
        except TaskboardError:
            raise
        except Exception as exc:
            logger.exception("Failed to list users: %s", exc)
            raise StoreError("Failed to list users") from exc

    @app.delete("/admin/users/{user_id}", status_code=204)
    async def delete_user(user_id: int, identity: Optional[Identity] = Depends(get_identity)) -> Response:
        """Delete a user together with their sessions and tasks."""
        service = get_auth_service()
        try:
            await asyncio.to_thread(service.delete_user, identity, user_id)
        except TaskboardError:
            raise
        except Exception as exc:
            logger.exception("Failed to delete user %s: %s", user_id, exc)
            raise StoreError("Failed to delete user") from exc
        return Response(status_code=204)
