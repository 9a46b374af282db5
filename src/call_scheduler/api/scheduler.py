"""Scheduler control endpoints.

``/scheduler/execute`` runs one tick and is safe to hit from a cron job
while the background loop is also running.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from call_scheduler.dependencies import CompletionRelayDep, SchedulerDep

router = APIRouter()


@router.api_route("/scheduler/execute", methods=["GET", "POST"])
async def execute_due_calls(scheduler: SchedulerDep) -> dict[str, Any]:
    """Execute scheduled calls that are due."""
    tick = await scheduler.tick()
    return {"success": True, **tick.to_dict()}


@router.get("/scheduler/status")
async def scheduler_status(
    scheduler: SchedulerDep,
    relay: CompletionRelayDep,
) -> dict[str, Any]:
    """Get scheduler state and metrics."""
    return {
        **scheduler.get_status(),
        "relay": relay.metrics.to_dict(),
    }
