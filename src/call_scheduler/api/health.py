"""Health check endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel

from call_scheduler import __version__
from call_scheduler.config import get_settings
from call_scheduler.dependencies import SchedulerDep
from call_scheduler.services.call_scheduler import SchedulerState


router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: str
    version: str
    instance_id: str
    environment: str
    checks: dict[str, Any]


@router.get("/health")
async def health_check(scheduler: SchedulerDep) -> HealthResponse:
    """Perform health check.

    Components checked:
    - API: Always ok if reachable
    - Scheduler: Background loop state (stopped is fine when ticks are
      triggered externally)
    """
    settings = get_settings()

    checks: dict[str, Any] = {
        "api": "ok",
        "scheduler": scheduler.state.value,
    }

    status = "healthy"
    if settings.scheduler.enabled and scheduler.state != SchedulerState.RUNNING:
        status = "degraded"

    return HealthResponse(
        status=status,
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=__version__,
        instance_id=settings.instance_id,
        environment=settings.environment,
        checks=checks,
    )
