"""Domain records stored in the record store.

Field names on the store side are fixed by the existing Airtable base,
so each model maps its attributes to and from the raw field dict.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from call_scheduler.core.clock import format_timestamp, parse_timestamp
from call_scheduler.db.store import Record


class TaskStatus(str, Enum):
    """Lifecycle of a scheduled call task."""

    PENDING = "pending"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


class CorrelationStatus(str, Enum):
    """Lifecycle of an outbound call correlation."""

    PENDING = "pending"
    IN_CALL = "in-call"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (CorrelationStatus.COMPLETED, CorrelationStatus.FAILED)


@dataclass
class ScheduledCallTask:
    """A request to place one outbound call at or after a given time."""

    phone_number: str
    message: str
    scheduled_time: datetime | None
    owner_agent_id: str
    id: str | None = None
    status: TaskStatus = TaskStatus.PENDING
    caller_name: str | None = None
    phone_number_id_override: str | None = None
    recipient_name: str | None = None
    record_id: str | None = None
    thread_id: str | None = None
    call_id: str | None = None
    error_message: str | None = None
    claimed_at: datetime | None = None
    claim_token: str | None = None
    attempt_count: int = 0
    created_time: str | None = None

    @classmethod
    def from_record(cls, record: Record) -> ScheduledCallTask:
        f = record.fields
        status = f.get("status") or TaskStatus.PENDING.value
        return cls(
            id=record.id,
            phone_number=f.get("phone_number") or "",
            message=f.get("message") or "",
            scheduled_time=parse_timestamp(f.get("scheduled_time")),
            owner_agent_id=f.get("owner_agent_id") or "",
            status=TaskStatus(status),
            caller_name=f.get("caller_name"),
            phone_number_id_override=f.get("phone_number_id"),
            recipient_name=f.get("recipient_name"),
            record_id=_first_link(f.get("recordId")),
            thread_id=f.get("threadId"),
            call_id=f.get("call_id"),
            error_message=f.get("error_message"),
            claimed_at=parse_timestamp(f.get("claimed_at")),
            claim_token=f.get("claim_token"),
            attempt_count=int(f.get("attempt_count") or 0),
            created_time=record.created_time,
        )

    def to_fields(self) -> dict[str, Any]:
        """Store fields for a new task (empty optionals omitted)."""
        fields: dict[str, Any] = {
            "phone_number": self.phone_number,
            "message": self.message,
            "scheduled_time": (
                format_timestamp(self.scheduled_time) if self.scheduled_time else None
            ),
            "owner_agent_id": self.owner_agent_id,
            "status": TaskStatus(self.status).value,
            "caller_name": self.caller_name,
            "phone_number_id": self.phone_number_id_override,
            "recipient_name": self.recipient_name,
            "recordId": self.record_id,
            "threadId": self.thread_id,
        }
        return {k: v for k, v in fields.items() if v not in (None, "")}

    def to_dict(self) -> dict[str, Any]:
        """API representation."""
        return {
            "id": self.id,
            "phone_number": self.phone_number,
            "message": self.message,
            "scheduled_time": (
                format_timestamp(self.scheduled_time) if self.scheduled_time else None
            ),
            "owner_agent_id": self.owner_agent_id,
            "status": TaskStatus(self.status).value,
            "caller_name": self.caller_name,
            "phone_number_id": self.phone_number_id_override,
            "recipient_name": self.recipient_name,
            "record_id": self.record_id,
            "thread_id": self.thread_id,
            "call_id": self.call_id,
            "error_message": self.error_message,
            "claimed_at": format_timestamp(self.claimed_at) if self.claimed_at else None,
            "attempt_count": self.attempt_count,
        }


@dataclass
class OutboundCallRequest:
    """Correlation between a placed call and the thread awaiting its result."""

    call_id: str
    record_id: str
    thread_id: str
    id: str | None = None
    status: CorrelationStatus = CorrelationStatus.PENDING
    created_at: datetime | None = None
    completed_at: datetime | None = None
    phone_number: str | None = None

    @classmethod
    def from_record(cls, record: Record) -> OutboundCallRequest:
        f = record.fields
        return cls(
            id=record.id,
            call_id=f.get("call_id") or "",
            record_id=_first_link(f.get("record_id")) or "",
            thread_id=f.get("thread_id") or "",
            status=CorrelationStatus(f.get("status") or CorrelationStatus.PENDING.value),
            created_at=parse_timestamp(f.get("created_at")),
            completed_at=parse_timestamp(f.get("completed_at")),
            phone_number=f.get("phone_number"),
        )

    def to_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "call_id": self.call_id,
            # Linked-record relation, not a bare string
            "record_id": [self.record_id],
            "thread_id": self.thread_id,
            "status": CorrelationStatus(self.status).value,
            "created_at": format_timestamp(self.created_at) if self.created_at else None,
            "completed_at": (
                format_timestamp(self.completed_at) if self.completed_at else None
            ),
            "phone_number": self.phone_number,
        }
        return {k: v for k, v in fields.items() if v not in (None, "")}


@dataclass
class OwnerProfile:
    """The user a voice agent calls on behalf of (read-only here)."""

    id: str
    full_name: str | None = None
    assistant_name: str | None = None  # What the voice agent calls itself
    mobile_number: str | None = None
    agent_id: str | None = None

    @classmethod
    def from_record(cls, record: Record) -> OwnerProfile:
        f = record.fields
        return cls(
            id=record.id,
            full_name=f.get("fullName") or None,
            assistant_name=f.get("kendallName") or None,
            mobile_number=f.get("mobileNumber") or None,
            agent_id=f.get("vapi_agent_id") or None,
        )

    def to_fields(self) -> dict[str, Any]:
        fields = {
            "fullName": self.full_name,
            "kendallName": self.assistant_name,
            "mobileNumber": self.mobile_number,
            "vapi_agent_id": self.agent_id,
        }
        return {k: v for k, v in fields.items() if v not in (None, "")}


def _first_link(value: Any) -> str | None:
    """Linked-record fields come back as lists of ids."""
    if isinstance(value, list):
        return value[0] if value else None
    return value or None
