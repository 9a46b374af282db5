"""Core building blocks for the call scheduler."""

from call_scheduler.core.exceptions import (
    CallSchedulerError,
    RecordStoreError,
    RecordStoreConnectionError,
    RecordStoreUnavailableError,
    RecordStoreRateLimitError,
    RecordNotFoundError,
    LinkedRecordNotFoundError,
    CallPlacementError,
    CallPlacementTimeoutError,
    ChatDeliveryError,
    ValidationError,
    InvalidPhoneNumberError,
)
from call_scheduler.core.logging import get_logger, setup_logging

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    # Exceptions
    "CallSchedulerError",
    "RecordStoreError",
    "RecordStoreConnectionError",
    "RecordStoreUnavailableError",
    "RecordStoreRateLimitError",
    "RecordNotFoundError",
    "LinkedRecordNotFoundError",
    "CallPlacementError",
    "CallPlacementTimeoutError",
    "ChatDeliveryError",
    "ValidationError",
    "InvalidPhoneNumberError",
]
