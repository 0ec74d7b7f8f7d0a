"""Registration and login session endpoints."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fastapi import Depends, FastAPI, Request, Response

from taskboard.exceptions import AuthError, StoreError, TaskboardError
from taskboard.users import Identity

from ..dependencies import (
    get_auth_service,
    get_config,
    get_identity,
    get_session_token,
    serialize_user,
)
from ..schemas import CredentialsRequest, MessageResponse, UserEnvelope, UserResponse

logger = logging.getLogger(__name__)


def register_auth_routes(app: FastAPI) -> None:
    """Register /auth endpoints."""

    @app.post("/auth/register", response_model=UserResponse, status_code=201)
    async def register(request: CredentialsRequest) -> UserResponse:
        service = get_auth_service()
        try:
            user = await asyncio.to_thread(service.register, request.email, request.password)
            return serialize_user(user)
        except TaskboardError:
            raise
        except Exception as exc:
            logger.exception("Failed to register user: %s", exc)
            raise StoreError("Failed to register user") from exc

    @app.post("/auth/login", response_model=UserEnvelope)
    async def login(request: CredentialsRequest, response: Response) -> UserEnvelope:
        """Check credentials and set the session cookie."""
        service = get_auth_service()
        try:
            identity, token = await asyncio.to_thread(service.login, request.email, request.password)
        except TaskboardError:
            raise
        except Exception as exc:
            logger.exception("Failed to log in: %s", exc)
            raise StoreError("Failed to log in") from exc

        auth = get_config().auth
        response.set_cookie(
            key=auth.session_cookie,
            value=token,
            httponly=True,
            samesite="lax",
            secure=auth.cookie_secure,
            max_age=auth.session_ttl_hours * 3600 if auth.session_ttl_hours > 0 else None,
        )
        return UserEnvelope(user=serialize_user(identity))

    @app.post("/auth/logout", response_model=MessageResponse)
    async def logout(request: Request, response: Response) -> MessageResponse:
        service = get_auth_service()
        try:
            await asyncio.to_thread(service.logout, get_session_token(request))
        except TaskboardError:
            raise
        except Exception as exc:
            logger.exception("Failed to end session: %s", exc)
            raise StoreError("Failed to log out") from exc
        response.delete_cookie(get_config().auth.session_cookie)
        return MessageResponse(message="Logged out")

    @app.get("/auth/me", response_model=UserEnvelope)
    async def me(identity: Optional[Identity] = Depends(get_identity)) -> UserEnvelope:
        if identity is None:
            raise AuthError("Not authenticated")
        return UserEnvelope(user=serialize_user(identity))
