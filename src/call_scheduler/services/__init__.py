"""Call scheduler services.

- CallExecutor: claims and runs one scheduled call task
- CallScheduler: background loop and tick trigger
- CompletionRelay: call-completed webhook to chat delivery
"""

from call_scheduler.services.call_executor import (
    CallExecutor,
    ExecutionOutcome,
    ExecutionResult,
    ExecutorConfig,
)
from call_scheduler.services.call_scheduler import (
    CallScheduler,
    SchedulerConfig,
    SchedulerMetrics,
    SchedulerState,
    TickResult,
)
from call_scheduler.services.completion_relay import (
    CallCompletedEvent,
    CompletionRelay,
    RelayOutcome,
)

__all__ = [
    "CallExecutor",
    "ExecutionOutcome",
    "ExecutionResult",
    "ExecutorConfig",
    "CallScheduler",
    "SchedulerConfig",
    "SchedulerMetrics",
    "SchedulerState",
    "TickResult",
    "CallCompletedEvent",
    "CompletionRelay",
    "RelayOutcome",
]
