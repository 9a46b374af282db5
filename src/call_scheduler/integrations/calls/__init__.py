"""Outbound call placement integrations."""

from call_scheduler.integrations.calls.base import (
    CallPlacementProvider,
    CallPlacementRequest,
    CallPlacementResult,
    MockCallProvider,
)
from call_scheduler.integrations.calls.factory import get_call_provider, reset_call_provider

__all__ = [
    "CallPlacementProvider",
    "CallPlacementRequest",
    "CallPlacementResult",
    "MockCallProvider",
    "get_call_provider",
    "reset_call_provider",
]
