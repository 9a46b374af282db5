"""Chat subsystem delivery interface.

When a call finishes, the conversation thread that requested it gets
the result so the user sees it in their chat.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from call_scheduler.core.logging import get_logger

log = get_logger(__name__)


@dataclass
class ChatDelivery:
    """Call result addressed to a conversation thread."""

    thread_id: str
    record_id: str
    outcome: str  # completed, failed
    call_id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "threadId": self.thread_id,
            "recordId": self.record_id,
            "outcome": self.outcome,
            "callId": self.call_id,
        }


class ChatSink(ABC):
    """Abstract base class for chat delivery targets."""

    @abstractmethod
    async def deliver(self, delivery: ChatDelivery) -> None:
        """Hand a call result to the chat subsystem.

        Raises:
            ChatDeliveryError: If the chat subsystem did not accept it
        """
        pass

    async def close(self) -> None:
        """Release any underlying connections."""


class LoggingChatSink(ChatSink):
    """Sink that only logs results; used when no chat webhook is set."""

    def __init__(self) -> None:
        self.delivered: list[ChatDelivery] = []

    async def deliver(self, delivery: ChatDelivery) -> None:
        self.delivered.append(delivery)
        log.info(
            "Call result ready for chat",
            thread_id=delivery.thread_id,
            record_id=delivery.record_id,
            call_id=delivery.call_id,
            outcome=delivery.outcome,
        )
