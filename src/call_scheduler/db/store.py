"""Record store contract.

The scheduler persists everything in a REST document store keyed by
opaque record ids. The store offers filtered queries and field-level
PATCH but no transactions, locks or compare-and-swap. Backends:

- AirtableRecordStore: the production store
- InMemoryRecordStore: deterministic double for development and tests
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from call_scheduler.db.filters import Filter


@dataclass
class Record:
    """A stored record: opaque id plus field map."""

    id: str
    fields: dict[str, Any] = field(default_factory=dict)
    created_time: str | None = None


class RecordStore(ABC):
    """Abstract base class for record store backends."""

    # Backends that can apply a patch only when a field still holds an
    # expected value set this and implement patch_if()
    supports_conditional_writes: bool = False

    @abstractmethod
    async def create(self, table: str, fields: dict[str, Any]) -> Record:
        """Insert a record and return it with its assigned id."""

    @abstractmethod
    async def get(self, table: str, record_id: str) -> Record | None:
        """Fetch a record, or None when it does not exist."""

    @abstractmethod
    async def patch(self, table: str, record_id: str, fields: dict[str, Any]) -> Record:
        """Update the given fields and return the full record.

        Raises:
            RecordNotFoundError: If the record does not exist
        """

    @abstractmethod
    async def list(self, table: str, filter: Filter | None = None) -> list[Record]:
        """Return every record matching the filter."""

    async def patch_if(
        self,
        table: str,
        record_id: str,
        expected: dict[str, Any],
        fields: dict[str, Any],
    ) -> Record | None:
        """Patch only if every field in ``expected`` still holds that value.

        Returns:
            The updated record, or None when the precondition failed
        """
        raise NotImplementedError(f"{type(self).__name__} has no conditional writes")

    async def close(self) -> None:
        """Release any underlying connections."""
