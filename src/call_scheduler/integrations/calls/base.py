"""Base Call Placement Interface.

Defines the abstract interface for outbound call platforms.
All call providers must implement this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from call_scheduler.core.logging import get_logger

log = get_logger(__name__)


@dataclass
class CallPlacementRequest:
    """Outbound call to place."""

    phone_number: str  # E.164 destination
    message: str  # What the agent should say or do
    owner_agent_id: str  # Voice-agent configuration to use
    caller_name: str | None = None
    phone_number_id: str | None = None  # Caller line override
    recipient_name: str | None = None
    # Who the call is made for, used in the greeting and voicemail
    owner_name: str | None = None
    assistant_name: str | None = None
    owner_phone: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class CallPlacementResult:
    """Platform acknowledgement of a placed call."""

    call_id: str
    status: str = "initiated"
    provider: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "call_id": self.call_id,
            "status": self.status,
            "provider": self.provider,
        }


class CallPlacementProvider(ABC):
    """Abstract base class for call placement providers."""

    name: str = "base"

    @abstractmethod
    async def place_call(self, request: CallPlacementRequest) -> CallPlacementResult:
        """Ask the platform to place a call.

        Args:
            request: Call to place

        Returns:
            Result carrying the platform's call id

        Raises:
            CallPlacementError: If the platform refuses or cannot be reached
        """
        pass

    async def close(self) -> None:
        """Release any underlying connections."""


class MockCallProvider(CallPlacementProvider):
    """Mock call provider for development and testing.

    Args:
        call_id: Fixed call id to return; random ids when None
        error: Exception raised instead of placing the call
    """

    name = "mock"

    def __init__(self, call_id: str | None = None, error: Exception | None = None):
        self.call_id = call_id
        self.error = error
        self.placed: list[CallPlacementRequest] = []

    async def place_call(self, request: CallPlacementRequest) -> CallPlacementResult:
        """Mock placement - records the request and returns success."""
        self.placed.append(request)
        if self.error is not None:
            raise self.error

        call_id = self.call_id or f"mock-{uuid4().hex[:12]}"
        log.info(
            "Mock call placed",
            call_id=call_id,
            to=request.phone_number,
            owner_agent_id=request.owner_agent_id,
        )
        return CallPlacementResult(call_id=call_id, status="queued", provider=self.name)
