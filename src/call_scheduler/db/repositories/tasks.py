"""Scheduled call task repository.

Owns the ``pending -> executing`` transition. That transition only
ever happens through ``claim_for_execution``; plain ``update`` is for
terminal transitions and attaching call results.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from call_scheduler.core.clock import Clock, format_timestamp, utcnow
from call_scheduler.core.exceptions import ValidationError
from call_scheduler.core.logging import get_logger
from call_scheduler.db.claim import optimistic_claim
from call_scheduler.db.filters import And, Eq, Filter, Lt, Lte, Or
from call_scheduler.db.models import ScheduledCallTask, TaskStatus
from call_scheduler.db.repositories.base import BaseRepository
from call_scheduler.db.store import Record, RecordStore

log = get_logger(__name__)

REQUIRED_TASK_FIELDS = ("phone_number", "message", "owner_agent_id", "scheduled_time")


class TaskRepository(BaseRepository[ScheduledCallTask]):
    """Repository for scheduled call tasks.

    Args:
        store: Record store backend
        table: Tasks table name
        claim_timeout_seconds: Executing tasks claimed longer ago than
            this are due again (0 disables reclaim)
        clock: Source of "now" when callers do not pass one
    """

    def __init__(
        self,
        store: RecordStore,
        table: str = "ScheduledCallTask",
        *,
        claim_timeout_seconds: float = 0,
        clock: Clock = utcnow,
    ):
        super().__init__(ScheduledCallTask, store, table)
        self.claim_timeout_seconds = claim_timeout_seconds
        self._clock = clock

    @property
    def reclaim_enabled(self) -> bool:
        return self.claim_timeout_seconds > 0

    def _stale_before(self, now: datetime) -> datetime:
        return now - timedelta(seconds=self.claim_timeout_seconds)

    async def create(self, obj_in: ScheduledCallTask) -> ScheduledCallTask:
        """Insert a new pending task.

        No deduplication: two identical requests give two tasks.

        Raises:
            ValidationError: If a required field is missing
        """
        missing = [name for name in REQUIRED_TASK_FIELDS if not getattr(obj_in, name)]
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                details={"missing": missing},
            )

        obj_in.status = TaskStatus.PENDING
        task = await super().create(obj_in)
        log.info(
            "Scheduled call task created",
            task_id=task.id,
            scheduled_time=format_timestamp(task.scheduled_time) if task.scheduled_time else None,
        )
        return task

    def due_filter(self, now: datetime) -> Filter:
        """Filter selecting tasks that should run at ``now``."""
        due = And(
            Eq("status", TaskStatus.PENDING.value),
            Lte("scheduled_time", now),
        )
        if not self.reclaim_enabled:
            return due
        stale = And(
            Eq("status", TaskStatus.EXECUTING.value),
            Lt("claimed_at", self._stale_before(now)),
        )
        return Or(due, stale)

    async def list_due(self, now: datetime | None = None) -> list[ScheduledCallTask]:
        """Get tasks that are due, oldest schedule first.

        Returns pending tasks with ``scheduled_time <= now`` plus, when
        reclaim is enabled, executing tasks whose claim has gone stale.
        """
        now = now or self._clock()
        tasks = await self.find(self.due_filter(now))
        return sorted(tasks, key=lambda t: t.scheduled_time or now)

    async def mark_completed(self, id: str, call_id: str) -> ScheduledCallTask:
        return await self.update(
            id, {"status": TaskStatus.COMPLETED.value, "call_id": call_id}
        )

    async def mark_failed(
        self,
        id: str,
        error_message: str,
        call_id: str | None = None,
    ) -> ScheduledCallTask:
        fields: dict[str, Any] = {
            "status": TaskStatus.FAILED.value,
            "error_message": error_message,
        }
        if call_id:
            fields["call_id"] = call_id
        return await self.update(id, fields)

    async def claim_for_execution(
        self,
        id: str,
        now: datetime | None = None,
    ) -> ScheduledCallTask | None:
        """Atomically (best effort) move a task to executing.

        A pending task is claimed outright. An executing task is claimed
        again only when reclaim is enabled and its claim is stale; the
        attempt counter tells the caller how many times that happened.

        Returns:
            The claimed task, or None if it was not claimable or another
            claimer won. No write is made for non-claimable tasks.

        Raises:
            RecordStoreError: On store or network failure
        """
        now = now or self._clock()
        stale_before = self._stale_before(now)

        def is_claimable(record: Record) -> bool:
            if record.fields.get("status") != TaskStatus.EXECUTING.value:
                return True
            claimed_at = ScheduledCallTask.from_record(record).claimed_at
            return claimed_at is not None and claimed_at < stale_before

        def claim_fields(record: Record) -> dict[str, Any]:
            return {
                "claimed_at": format_timestamp(now),
                "attempt_count": int(record.fields.get("attempt_count") or 0) + 1,
            }

        expected: tuple[str, ...] = (TaskStatus.PENDING.value,)
        if self.reclaim_enabled:
            expected += (TaskStatus.EXECUTING.value,)

        result = await optimistic_claim(
            self._store,
            self._table,
            id,
            expected,
            TaskStatus.EXECUTING.value,
            extra_fields=claim_fields,
            eligible=is_claimable,
        )
        if not result.claimed:
            log.debug("Task not claimed", task_id=id, reason=result.reason)
            return None

        task = ScheduledCallTask.from_record(result.record)
        if result.previous_status == TaskStatus.EXECUTING.value:
            log.warning(
                "Reclaimed stale executing task",
                task_id=id,
                attempt=task.attempt_count,
            )
        else:
            log.info("Task claimed", task_id=id, attempt=task.attempt_count)
        return task
