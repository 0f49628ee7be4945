"""System endpoints (health)."""

from __future__ import annotations

import time

from fastapi import APIRouter, Request

from .. import schemas

router = APIRouter(prefix="", tags=["System"])


@router.get("/health", response_model=schemas.HealthResponse)
def get_health(request: Request) -> schemas.HealthResponse:
    """Liveness check."""
    uptime_s = time.time() - request.app.state.started_at
    return schemas.HealthResponse(status="ok", uptime_s=uptime_s)
