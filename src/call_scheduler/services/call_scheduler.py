"""Call Scheduler Service.

Background job scheduler for executing scheduled outbound calls.
Runs as an asyncio task and repeatedly hands due tasks to the executor.

Features:
- Configurable polling interval
- Concurrent call limit
- Graceful shutdown
- Error recovery
- Metrics collection

The loop is one trigger; ``tick()`` can equally be driven from outside
(the scheduler HTTP endpoint, a cron job, the CLI). Overlapping ticks,
in one process or many, are safe because every task is claimed before
it runs.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from call_scheduler.core.clock import Clock, format_timestamp, utcnow
from call_scheduler.core.exceptions import RecordStoreError
from call_scheduler.core.logging import get_logger
from call_scheduler.db.models import ScheduledCallTask
from call_scheduler.db.repositories.tasks import TaskRepository
from call_scheduler.services.call_executor import (
    CallExecutor,
    ExecutionOutcome,
    ExecutionResult,
)

log = get_logger(__name__)


class SchedulerState(str, Enum):
    """Scheduler states."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPING = "stopping"


@dataclass
class SchedulerConfig:
    """Call scheduler configuration."""

    # Polling
    poll_interval_seconds: float = 5.0  # How often to look for due tasks

    # Concurrency
    max_concurrent_calls: int = 5  # Maximum simultaneous executions


@dataclass
class TickResult:
    """Summary of one scheduler pass."""

    started_at: datetime
    due: int = 0
    claimed: int = 0
    completed: int = 0
    failed: int = 0
    skipped: int = 0
    errors: int = 0
    results: list[ExecutionResult] = field(default_factory=list)

    @classmethod
    def from_results(
        cls,
        started_at: datetime,
        due: int,
        results: list[ExecutionResult],
    ) -> TickResult:
        tick = cls(started_at=started_at, due=due, results=results)
        for result in results:
            if result.claimed:
                tick.claimed += 1
            if result.outcome == ExecutionOutcome.COMPLETED:
                tick.completed += 1
            elif result.outcome == ExecutionOutcome.FAILED:
                tick.failed += 1
            elif result.outcome == ExecutionOutcome.SKIPPED:
                tick.skipped += 1
            else:
                tick.errors += 1
        return tick

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": format_timestamp(self.started_at),
            "due": self.due,
            "claimed": self.claimed,
            "completed": self.completed,
            "failed": self.failed,
            "skipped": self.skipped,
            "errors": self.errors,
            "results": [r.to_dict() for r in self.results],
        }


@dataclass
class SchedulerMetrics:
    """Scheduler performance metrics."""

    started_at: datetime | None = None
    ticks: int = 0
    tasks_due: int = 0
    tasks_claimed: int = 0
    calls_completed: int = 0
    calls_failed: int = 0
    tasks_skipped: int = 0
    errors: int = 0
    last_tick_at: datetime | None = None
    last_error: str | None = None

    def record(self, tick: TickResult) -> None:
        self.tasks_due += tick.due
        self.tasks_claimed += tick.claimed
        self.calls_completed += tick.completed
        self.calls_failed += tick.failed
        self.tasks_skipped += tick.skipped
        self.errors += tick.errors

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ticks": self.ticks,
            "tasks_due": self.tasks_due,
            "tasks_claimed": self.tasks_claimed,
            "calls_completed": self.calls_completed,
            "calls_failed": self.calls_failed,
            "tasks_skipped": self.tasks_skipped,
            "errors": self.errors,
            "last_tick_at": self.last_tick_at.isoformat() if self.last_tick_at else None,
            "last_error": self.last_error,
        }


class CallScheduler:
    """Background scheduler for executing due call tasks.

    Usage:
        scheduler = CallScheduler(
            tasks=task_repo,
            executor=executor,
            config=SchedulerConfig(poll_interval_seconds=5),
        )

        # In application lifespan
        await scheduler.start()

        # When shutting down
        await scheduler.stop()
    """

    def __init__(
        self,
        tasks: TaskRepository,
        executor: CallExecutor,
        config: SchedulerConfig | None = None,
        clock: Clock = utcnow,
    ) -> None:
        """Initialize scheduler.

        Args:
            tasks: Task repository to list due tasks from
            executor: Executor that claims and runs each task
            config: Scheduler configuration
            clock: Source of "now" for each tick
        """
        self.config = config or SchedulerConfig()
        self._tasks = tasks
        self._executor = executor
        self._clock = clock

        self._state = SchedulerState.STOPPED
        self._task: asyncio.Task | None = None
        self._active_tasks: set[str] = set()
        self._metrics = SchedulerMetrics()

        # Semaphore for concurrent call limiting
        self._call_semaphore = asyncio.Semaphore(self.config.max_concurrent_calls)

        # Stop event
        self._stop_event = asyncio.Event()

    @property
    def state(self) -> SchedulerState:
        """Get current scheduler state."""
        return self._state

    @property
    def metrics(self) -> SchedulerMetrics:
        """Get scheduler metrics."""
        return self._metrics

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._state == SchedulerState.RUNNING

    @property
    def active_task_count(self) -> int:
        """Get number of tasks currently executing in this process."""
        return len(self._active_tasks)

    async def start(self) -> None:
        """Start the scheduler background task."""
        if self._state != SchedulerState.STOPPED:
            log.warning("Scheduler already started", state=self._state.value)
            return

        self._state = SchedulerState.STARTING
        self._stop_event.clear()
        self._metrics = SchedulerMetrics(started_at=self._clock())

        log.info("Starting call scheduler")

        # Start background task
        self._task = asyncio.create_task(self._run_loop())
        self._state = SchedulerState.RUNNING

        log.info(
            "Call scheduler started",
            poll_interval_seconds=self.config.poll_interval_seconds,
        )

    async def stop(self, timeout: float = 30.0) -> None:
        """Stop the scheduler gracefully.

        Args:
            timeout: Maximum time to wait for the running tick to finish
        """
        if self._state == SchedulerState.STOPPED:
            return

        log.info("Stopping call scheduler")
        self._state = SchedulerState.STOPPING
        self._stop_event.set()

        # Wait for background task
        if self._task:
            try:
                await asyncio.wait_for(self._task, timeout=timeout)
            except asyncio.TimeoutError:
                log.warning("Scheduler stop timed out, cancelling task")
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass
            self._task = None

        self._state = SchedulerState.STOPPED
        log.info("Call scheduler stopped")

    async def pause(self) -> None:
        """Pause the scheduler (stop picking up new tasks)."""
        if self._state == SchedulerState.RUNNING:
            self._state = SchedulerState.PAUSED
            log.info("Call scheduler paused")

    async def resume(self) -> None:
        """Resume a paused scheduler."""
        if self._state == SchedulerState.PAUSED:
            self._state = SchedulerState.RUNNING
            log.info("Call scheduler resumed")

    async def _run_loop(self) -> None:
        """Main scheduler loop."""
        while not self._stop_event.is_set():
            try:
                # Only process if running (not paused)
                if self._state == SchedulerState.RUNNING:
                    await self.tick()
            except Exception as e:
                self._metrics.errors += 1
                self._metrics.last_error = str(e)
                log.error("Scheduler loop error", error=str(e), error_type=type(e).__name__)

            # Wait for next poll or stop
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=self.config.poll_interval_seconds,
                )
            except asyncio.TimeoutError:
                pass  # Normal timeout, continue loop

    async def tick(self) -> TickResult:
        """Run one pass: list due tasks and execute them concurrently.

        Returns:
            Summary of the pass. A store failure while listing gives an
            empty summary; the next tick tries again.
        """
        now = self._clock()
        self._metrics.ticks += 1
        self._metrics.last_tick_at = now

        try:
            due = await self._tasks.list_due(now)
        except RecordStoreError as e:
            self._metrics.errors += 1
            self._metrics.last_error = str(e)
            log.warning("Could not list due tasks", error=e.message)
            return TickResult(started_at=now)

        if not due:
            log.debug("No due tasks")
            return TickResult(started_at=now)

        log.info("Executing due tasks", count=len(due))

        results = await asyncio.gather(*(self._run_task(task) for task in due))
        tick = TickResult.from_results(now, len(due), list(results))
        self._metrics.record(tick)

        log.info(
            "Scheduler tick finished",
            due=tick.due,
            claimed=tick.claimed,
            completed=tick.completed,
            failed=tick.failed,
            skipped=tick.skipped,
            errors=tick.errors,
        )
        return tick

    async def _run_task(self, task: ScheduledCallTask) -> ExecutionResult:
        """Execute a single task within the concurrency limit."""
        async with self._call_semaphore:
            self._active_tasks.add(task.id)
            try:
                return await self._executor.execute(task)
            except Exception as e:
                self._metrics.last_error = str(e)
                log.error(
                    "Error executing task",
                    task_id=task.id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return ExecutionResult(
                    task_id=task.id,
                    outcome=ExecutionOutcome.ERROR,
                    error=str(e),
                )
            finally:
                self._active_tasks.discard(task.id)

    def get_status(self) -> dict[str, Any]:
        """Get scheduler status.

        Returns:
            Status dictionary
        """
        return {
            "state": self._state.value,
            "is_running": self.is_running,
            "active_tasks": self.active_task_count,
            "max_concurrent_calls": self.config.max_concurrent_calls,
            "poll_interval_seconds": self.config.poll_interval_seconds,
            "metrics": self._metrics.to_dict(),
        }
