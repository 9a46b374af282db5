"""Call Scheduler Exception Hierarchy.

Provides structured error handling with context preservation
and proper HTTP status code mapping.
"""

from __future__ import annotations

from typing import Any


class CallSchedulerError(Exception):
    """Base exception for all Call Scheduler errors.

    All custom exceptions should inherit from this class.
    Provides:
    - Structured error context
    - HTTP status code mapping
    - Logging-friendly representation
    """

    status_code: int = 500
    error_code: str = "CALL_SCHEDULER_ERROR"

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message
            details: Additional context for debugging
            cause: Original exception if wrapping
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert to API-friendly dictionary."""
        result: dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        if self.cause:
            result["cause"] = str(self.cause)
        return result

    def __str__(self) -> str:
        """String representation for logging."""
        parts = [f"{self.error_code}: {self.message}"]
        if self.details:
            parts.append(f"details={self.details}")
        if self.cause:
            parts.append(f"cause={self.cause}")
        return " | ".join(parts)


# =============================================================================
# Record Store Errors
# =============================================================================


class RecordStoreError(CallSchedulerError):
    """Base class for record store errors.

    Raised for failed store requests; callers treat these as transient.
    """

    status_code = 503
    error_code = "RECORD_STORE_ERROR"


class RecordStoreConnectionError(RecordStoreError):
    """Could not reach the record store."""

    error_code = "RECORD_STORE_CONNECTION_ERROR"


class RecordStoreUnavailableError(RecordStoreError):
    """Record store answered with a server error."""

    error_code = "RECORD_STORE_UNAVAILABLE"


class RecordStoreRateLimitError(RecordStoreError):
    """Record store rejected the request with a rate limit."""

    status_code = 429
    error_code = "RECORD_STORE_RATE_LIMITED"


class RecordNotFoundError(RecordStoreError):
    """Requested record not found."""

    status_code = 404
    error_code = "RECORD_NOT_FOUND"


class LinkedRecordNotFoundError(RecordStoreError):
    """A relation points at a record that does not exist."""

    status_code = 409
    error_code = "LINKED_RECORD_NOT_FOUND"


# =============================================================================
# Call Placement Errors
# =============================================================================


class CallPlacementError(CallSchedulerError):
    """The call platform rejected or failed a placement request."""

    status_code = 502
    error_code = "CALL_PLACEMENT_ERROR"


class CallPlacementTimeoutError(CallPlacementError):
    """Placement request did not finish in time."""

    status_code = 504
    error_code = "CALL_PLACEMENT_TIMEOUT"


# =============================================================================
# Chat Delivery Errors
# =============================================================================


class ChatDeliveryError(CallSchedulerError):
    """Forwarding a call result to the chat subsystem failed."""

    status_code = 502
    error_code = "CHAT_DELIVERY_ERROR"


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(CallSchedulerError):
    """Input validation failed."""

    status_code = 400
    error_code = "VALIDATION_ERROR"


class InvalidPhoneNumberError(ValidationError):
    """Phone number cannot be normalised to E.164."""

    error_code = "INVALID_PHONE_NUMBER"
