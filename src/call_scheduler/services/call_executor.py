"""Scheduled Call Executor.

Runs one due task end to end:

1. Claim it (skip if another worker won)
2. Validate and normalise the destination
   and look up the owner the call is made for
3. Place the call with the configured provider
4. Record a correlation so the completion webhook can find the thread
5. Mark the task completed, or failed with a readable reason

A handled error never leaves the task in ``executing``. If even the
terminal write fails, the stale-claim reclaim picks the task up later.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from enum import Enum
from typing import Any

from call_scheduler.core.clock import Clock, utcnow
from call_scheduler.core.exceptions import (
    CallPlacementTimeoutError,
    CallSchedulerError,
    RecordStoreError,
    ValidationError,
)
from call_scheduler.core.logging import get_logger
from call_scheduler.core.phone import extract_recipient_name, format_e164
from call_scheduler.db.models import OwnerProfile, ScheduledCallTask
from call_scheduler.db.repositories.correlations import CorrelationRepository
from call_scheduler.db.repositories.owners import OwnerRepository
from call_scheduler.db.repositories.tasks import TaskRepository
from call_scheduler.integrations.calls.base import (
    CallPlacementProvider,
    CallPlacementRequest,
    CallPlacementResult,
)

log = get_logger(__name__)


class ExecutionOutcome(str, Enum):
    """What happened to a task handed to the executor."""

    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"  # Not claimable or claimed by someone else
    ERROR = "error"  # Store failure; task state unknown


@dataclass
class ExecutionResult:
    """Result of executing one task."""

    task_id: str
    outcome: ExecutionOutcome
    call_id: str | None = None
    error: str | None = None
    claimed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "outcome": self.outcome.value,
            "call_id": self.call_id,
            "error": self.error,
        }


@dataclass
class ExecutorConfig:
    """Call executor configuration."""

    claim_jitter_seconds: float = 0.1  # Random delay before claiming
    max_attempts: int = 3  # Claims allowed before a task is abandoned
    placement_timeout_seconds: float = 45.0


def _error_text(error: BaseException | str) -> str:
    if isinstance(error, str):
        return error
    if isinstance(error, CallSchedulerError):
        return error.message
    return str(error) or type(error).__name__


class CallExecutor:
    """Executes scheduled call tasks.

    Usage:
        executor = CallExecutor(task_repo, correlation_repo, provider)
        result = await executor.execute(task)
    """

    def __init__(
        self,
        tasks: TaskRepository,
        correlations: CorrelationRepository,
        provider: CallPlacementProvider,
        config: ExecutorConfig | None = None,
        clock: Clock = utcnow,
        owners: OwnerRepository | None = None,
    ) -> None:
        self._tasks = tasks
        self._correlations = correlations
        self._provider = provider
        self.config = config or ExecutorConfig()
        self._clock = clock
        self._owners = owners

    async def execute(self, task: ScheduledCallTask) -> ExecutionResult:
        """Claim and run a single task.

        Args:
            task: Task as listed by the scheduler; only its id is trusted,
                the claim re-reads the current state

        Returns:
            Execution result

        Raises:
            RecordStoreError: If the claim itself could not reach the store
        """
        task_id = task.id

        if self.config.claim_jitter_seconds > 0:
            await asyncio.sleep(random.uniform(0, self.config.claim_jitter_seconds))

        claimed = await self._tasks.claim_for_execution(task_id, now=self._clock())
        if claimed is None:
            return ExecutionResult(task_id=task_id, outcome=ExecutionOutcome.SKIPPED)

        if claimed.attempt_count > self.config.max_attempts:
            return await self._fail(
                claimed,
                f"Abandoned after {self.config.max_attempts} attempts",
                call_id=claimed.call_id,
            )

        call_id: str | None = None
        try:
            owner = await self._lookup_owner(claimed.owner_agent_id)
            request = self._build_request(claimed, owner)
            placement = await self._place(request)
            call_id = placement.call_id

            if claimed.record_id and claimed.thread_id:
                await self._correlations.create_for_call(
                    call_id=call_id,
                    record_id=claimed.record_id,
                    thread_id=claimed.thread_id,
                    phone_number=request.phone_number,
                )
            else:
                log.debug("Task has no conversation reference", task_id=task_id)

        except Exception as e:
            return await self._fail(claimed, e, call_id=call_id)

        try:
            await self._tasks.mark_completed(task_id, call_id)
        except Exception as e:
            log.error(
                "Could not mark task completed",
                task_id=task_id,
                call_id=call_id,
                error=str(e),
            )
            return ExecutionResult(
                task_id=task_id,
                outcome=ExecutionOutcome.ERROR,
                call_id=call_id,
                error=_error_text(e),
                claimed=True,
            )

        log.info("Scheduled call executed", task_id=task_id, call_id=call_id)
        return ExecutionResult(
            task_id=task_id,
            outcome=ExecutionOutcome.COMPLETED,
            call_id=call_id,
            claimed=True,
        )

    async def _lookup_owner(self, agent_id: str) -> OwnerProfile | None:
        """Owner the call is made for; a failed lookup falls back to defaults."""
        if self._owners is None or not agent_id:
            return None
        try:
            owner = await self._owners.find_by_agent_id(agent_id)
        except RecordStoreError as e:
            log.warning("Owner lookup failed", owner_agent_id=agent_id, error=e.message)
            return None
        if owner is None:
            log.warning("No owner for voice agent", owner_agent_id=agent_id)
        return owner

    def _build_request(
        self,
        task: ScheduledCallTask,
        owner: OwnerProfile | None = None,
    ) -> CallPlacementRequest:
        """Turn a claimed task into a placement request.

        Raises:
            ValidationError: If required fields are missing
            InvalidPhoneNumberError: If the number cannot be normalised
        """
        if not task.phone_number or not task.message or not task.owner_agent_id:
            raise ValidationError(
                "Missing required fields (phone_number, message, or owner_agent_id)",
                details={"task_id": task.id},
            )

        return CallPlacementRequest(
            phone_number=format_e164(task.phone_number),
            message=task.message,
            owner_agent_id=task.owner_agent_id,
            caller_name=task.caller_name,
            phone_number_id=task.phone_number_id_override,
            recipient_name=task.recipient_name or extract_recipient_name(task.message),
            owner_name=owner.full_name if owner else None,
            assistant_name=owner.assistant_name if owner else None,
            owner_phone=owner.mobile_number if owner else None,
            metadata={"taskId": task.id},
        )

    async def _place(self, request: CallPlacementRequest) -> CallPlacementResult:
        try:
            return await asyncio.wait_for(
                self._provider.place_call(request),
                timeout=self.config.placement_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise CallPlacementTimeoutError(
                f"Call placement did not finish within "
                f"{self.config.placement_timeout_seconds}s",
                cause=e,
            ) from e

    async def _fail(
        self,
        task: ScheduledCallTask,
        error: BaseException | str,
        call_id: str | None = None,
    ) -> ExecutionResult:
        message = _error_text(error)
        log.warning(
            "Scheduled call failed",
            task_id=task.id,
            call_id=call_id,
            error=message,
        )

        try:
            await self._tasks.mark_failed(task.id, message, call_id=call_id)
        except Exception as e:
            log.error(
                "Could not mark task failed",
                task_id=task.id,
                error=str(e),
            )
            return ExecutionResult(
                task_id=task.id,
                outcome=ExecutionOutcome.ERROR,
                call_id=call_id,
                error=_error_text(e),
                claimed=True,
            )

        return ExecutionResult(
            task_id=task.id,
            outcome=ExecutionOutcome.FAILED,
            call_id=call_id,
            error=message,
            claimed=True,
        )
