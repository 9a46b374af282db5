"""Webhook endpoints for the call platform.

The platform reports the end of every call it placed for us. The
payload is deliberately strict: unknown keys are rejected so a changed
upstream format fails loudly instead of being half-processed.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from call_scheduler.core.logging import get_logger
from call_scheduler.dependencies import CompletionRelayDep
from call_scheduler.services.completion_relay import CallCompletedEvent

log = get_logger(__name__)

router = APIRouter()

# Maximum sizes
MAX_CALL_ID_LENGTH = 256


class CallCompletedWebhook(BaseModel):
    """Call-completed webhook payload."""

    model_config = ConfigDict(extra="forbid")

    call_id: str = Field(
        ...,
        alias="callId",
        min_length=1,
        max_length=MAX_CALL_ID_LENGTH,
        description="External call ID",
    )
    outcome: Literal["completed", "failed"]
    completed_at: datetime = Field(..., alias="completedAt")


class CallCompletedResponse(BaseModel):
    """Webhook acknowledgement."""

    success: bool
    outcome: str


@router.post("/webhooks/call-completed", response_model=CallCompletedResponse)
async def handle_call_completed(
    payload: CallCompletedWebhook,
    relay: CompletionRelayDep,
) -> CallCompletedResponse:
    """Handle call-completed webhook.

    Unknown call ids are acknowledged with ``outcome: dropped`` so the
    platform does not keep retrying them. Store failures surface as 503
    and may be retried.
    """
    log.info("Call completed webhook", call_id=payload.call_id, outcome=payload.outcome)

    outcome = await relay.handle(
        CallCompletedEvent(
            call_id=payload.call_id,
            outcome=payload.outcome,
            completed_at=payload.completed_at,
        )
    )

    return CallCompletedResponse(success=True, outcome=outcome.value)
