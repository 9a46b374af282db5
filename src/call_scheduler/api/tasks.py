"""Scheduled call task endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from call_scheduler.db.models import ScheduledCallTask
from call_scheduler.dependencies import TaskRepositoryDep

router = APIRouter()

MAX_PHONE_NUMBER_LENGTH = 32
MAX_MESSAGE_LENGTH = 4096
MAX_ID_LENGTH = 256


class TaskCreateRequest(BaseModel):
    """Request to schedule an outbound call."""

    phone_number: str = Field(..., min_length=1, max_length=MAX_PHONE_NUMBER_LENGTH)
    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)
    scheduled_time: datetime
    owner_agent_id: str = Field(..., min_length=1, max_length=MAX_ID_LENGTH)
    caller_name: str | None = Field(default=None, max_length=MAX_ID_LENGTH)
    phone_number_id: str | None = Field(default=None, max_length=MAX_ID_LENGTH)
    recipient_name: str | None = Field(default=None, max_length=MAX_ID_LENGTH)
    record_id: str | None = Field(default=None, max_length=MAX_ID_LENGTH)
    thread_id: str | None = Field(default=None, max_length=MAX_ID_LENGTH)


@router.post("/tasks", status_code=201)
async def create_task(payload: TaskCreateRequest, tasks: TaskRepositoryDep) -> dict[str, Any]:
    """Schedule an outbound call."""
    task = await tasks.create(
        ScheduledCallTask(
            phone_number=payload.phone_number,
            message=payload.message,
            scheduled_time=payload.scheduled_time,
            owner_agent_id=payload.owner_agent_id,
            caller_name=payload.caller_name,
            phone_number_id_override=payload.phone_number_id,
            recipient_name=payload.recipient_name,
            record_id=payload.record_id,
            thread_id=payload.thread_id,
        )
    )
    return task.to_dict()


@router.get("/tasks/{task_id}")
async def get_task(task_id: str, tasks: TaskRepositoryDep) -> dict[str, Any]:
    """Get a scheduled call task."""
    task = await tasks.get(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    return task.to_dict()
