"""Call Completion Relay.

Turns a call-completed webhook into a result the user can see:
looks up the correlation for the call id, marks it terminal and
forwards ``{threadId, recordId, outcome}`` to the chat subsystem.
A correlation is relayed once: completions for a call whose
correlation is already terminal are ignored.

Webhooks for calls we have no correlation for (placed elsewhere, or
the correlation write failed) are logged and dropped.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from call_scheduler.core.clock import Clock, utcnow
from call_scheduler.core.exceptions import ChatDeliveryError
from call_scheduler.core.logging import get_logger
from call_scheduler.db.models import CorrelationStatus
from call_scheduler.db.repositories.correlations import CorrelationRepository
from call_scheduler.integrations.chat.base import ChatDelivery, ChatSink

log = get_logger(__name__)


class RelayOutcome(str, Enum):
    """What the relay did with a completion event."""

    DELIVERED = "delivered"
    DROPPED = "dropped"  # No correlation for this call id
    DUPLICATE = "duplicate"  # Correlation already terminal
    DELIVERY_FAILED = "delivery_failed"  # Correlation updated, chat did not accept


@dataclass
class CallCompletedEvent:
    """Completion notification from the call platform."""

    call_id: str
    outcome: str  # completed, failed
    completed_at: datetime | None = None


@dataclass
class RelayMetrics:
    """Completion relay counters."""

    received: int = 0
    delivered: int = 0
    dropped: int = 0
    duplicate: int = 0
    delivery_failed: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "received": self.received,
            "delivered": self.delivered,
            "dropped": self.dropped,
            "duplicate": self.duplicate,
            "delivery_failed": self.delivery_failed,
        }


class CompletionRelay:
    """Relays call completions to the waiting conversation."""

    def __init__(
        self,
        correlations: CorrelationRepository,
        sink: ChatSink,
        clock: Clock = utcnow,
    ) -> None:
        self._correlations = correlations
        self._sink = sink
        self._clock = clock
        self.metrics = RelayMetrics()

    async def handle(self, event: CallCompletedEvent) -> RelayOutcome:
        """Process one completion event.

        Returns:
            Relay outcome

        Raises:
            RecordStoreError: On store failure (the platform may retry)
        """
        self.metrics.received += 1
        status = CorrelationStatus(event.outcome)

        correlation = await self._correlations.find_by_call_id(event.call_id)
        if correlation is None:
            self.metrics.dropped += 1
            log.warning(
                "correlation_not_found",
                call_id=event.call_id,
                outcome=event.outcome,
            )
            return RelayOutcome.DROPPED

        if correlation.status.is_terminal:
            return self._duplicate(event, correlation.status)

        updated = await self._correlations.update_status(
            event.call_id,
            status,
            completed_at=event.completed_at or self._clock(),
            current=correlation,
        )
        if updated is None:
            # A concurrent webhook for the same call got there first
            return self._duplicate(event)
        correlation = updated

        delivery = ChatDelivery(
            thread_id=correlation.thread_id,
            record_id=correlation.record_id,
            outcome=status.value,
            call_id=event.call_id,
        )
        try:
            await self._sink.deliver(delivery)
        except ChatDeliveryError as e:
            self.metrics.delivery_failed += 1
            log.error(
                "Call result not delivered to chat",
                call_id=event.call_id,
                thread_id=correlation.thread_id,
                error=e.message,
            )
            return RelayOutcome.DELIVERY_FAILED

        self.metrics.delivered += 1
        log.info(
            "Call completion relayed",
            call_id=event.call_id,
            thread_id=correlation.thread_id,
            outcome=status.value,
        )
        return RelayOutcome.DELIVERED

    def _duplicate(
        self, event: CallCompletedEvent, status: CorrelationStatus | None = None
    ) -> RelayOutcome:
        self.metrics.duplicate += 1
        log.info(
            "Correlation already terminal, ignoring completion",
            call_id=event.call_id,
            outcome=event.outcome,
            status=status.value if status else None,
        )
        return RelayOutcome.DUPLICATE
