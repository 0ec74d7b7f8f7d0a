"""Health check endpoint."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import FastAPI

from ..schemas import HealthResponse


def register_health_routes(app: FastAPI) -> None:
    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="OK", timestamp=datetime.now(timezone.utc).isoformat())
