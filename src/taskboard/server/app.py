"""FastAPI application bootstrap."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from taskboard import __version__
from taskboard.exceptions import StoreError, TaskboardError
from taskboard.logger import setup_logger

from .dependencies import get_config
from .routes import (
    register_admin_routes,
    register_auth_routes,
    register_health_routes,
    register_task_routes,
)

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    """Turn domain errors into JSON responses."""

    @app.exception_handler(TaskboardError)
    async def handle_taskboard_error(request: Request, exc: TaskboardError) -> JSONResponse:
        if isinstance(exc, StoreError):
            logger.error(
                "Store error on %s %s: %s (cause: %r)",
                request.method,
                request.url.path,
                exc.message,
                exc.__cause__,
            )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
        )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    config = get_config()
    setup_logger(log_level=config.log_level, log_file=config.log_file)

    app = FastAPI(title="Taskboard API", version=__version__)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    register_health_routes(app)
    register_auth_routes(app)
    register_admin_routes(app)
    register_task_routes(app)

    logger.info(
        "Taskboard API configured backend=%s require_session=%s",
        config.storage.backend,
        config.auth.require_session,
    )
    return app
