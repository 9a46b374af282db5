"""Persistence layer for the call scheduler.

The record store is a REST document store without transactions;
everything above it goes through the repositories.
"""

from call_scheduler.db.airtable import AirtableRecordStore
from call_scheduler.db.claim import ClaimResult, optimistic_claim
from call_scheduler.db.filters import And, Eq, Filter, Lt, Lte, Or
from call_scheduler.db.memory import InMemoryRecordStore
from call_scheduler.db.models import (
    CorrelationStatus,
    OutboundCallRequest,
    OwnerProfile,
    ScheduledCallTask,
    TaskStatus,
)
from call_scheduler.db.store import Record, RecordStore

__all__ = [
    # Store
    "Record",
    "RecordStore",
    "AirtableRecordStore",
    "InMemoryRecordStore",
    # Filters
    "Filter",
    "Eq",
    "Lt",
    "Lte",
    "And",
    "Or",
    # Claims
    "ClaimResult",
    "optimistic_claim",
    # Models
    "TaskStatus",
    "CorrelationStatus",
    "ScheduledCallTask",
    "OutboundCallRequest",
    "OwnerProfile",
]
