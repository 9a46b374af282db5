"""In-memory record store.

Deterministic stand-in for the REST store. Every operation yields to
the event loop exactly once and then runs to completion without
further suspension, so coroutines gathered together interleave in a
fixed round-robin order. That makes races such as two schedulers
claiming the same task reproducible in tests.
"""

from __future__ import annotations

import asyncio
import copy
import itertools
from typing import Any

from call_scheduler.core.clock import format_timestamp, utcnow
from call_scheduler.core.exceptions import RecordNotFoundError
from call_scheduler.db.filters import Filter
from call_scheduler.db.store import Record, RecordStore


class InMemoryRecordStore(RecordStore):
    """Dictionary-backed record store.

    Args:
        conditional_writes: Enable patch_if(), emulating a store that
            can apply a write only when a field still holds a value
    """

    def __init__(self, *, conditional_writes: bool = False) -> None:
        self._tables: dict[str, dict[str, Record]] = {}
        self._ids = itertools.count(1)
        self.supports_conditional_writes = conditional_writes
        # Operation log, handy for asserting "no write happened"
        self.operations: list[tuple[str, str, str | None]] = []

    def _table(self, table: str) -> dict[str, Record]:
        return self._tables.setdefault(table, {})

    def _next_id(self) -> str:
        return f"rec{next(self._ids):014d}"

    @staticmethod
    def _copy(record: Record) -> Record:
        return copy.deepcopy(record)

    async def create(self, table: str, fields: dict[str, Any]) -> Record:
        await asyncio.sleep(0)
        record = Record(
            id=self._next_id(),
            fields=copy.deepcopy(fields),
            created_time=format_timestamp(utcnow()),
        )
        self._table(table)[record.id] = record
        self.operations.append(("create", table, record.id))
        return self._copy(record)

    async def get(self, table: str, record_id: str) -> Record | None:
        await asyncio.sleep(0)
        self.operations.append(("get", table, record_id))
        record = self._table(table).get(record_id)
        return self._copy(record) if record else None

    async def patch(self, table: str, record_id: str, fields: dict[str, Any]) -> Record:
        await asyncio.sleep(0)
        record = self._table(table).get(record_id)
        if record is None:
            raise RecordNotFoundError(
                f"Record {record_id} not found", details={"table": table}
            )
        record.fields.update(copy.deepcopy(fields))
        self.operations.append(("patch", table, record_id))
        return self._copy(record)

    async def list(self, table: str, filter: Filter | None = None) -> list[Record]:
        await asyncio.sleep(0)
        self.operations.append(("list", table, None))
        return [
            self._copy(record)
            for record in self._table(table).values()
            if filter is None or filter.matches(record.fields)
        ]

    async def patch_if(
        self,
        table: str,
        record_id: str,
        expected: dict[str, Any],
        fields: dict[str, Any],
    ) -> Record | None:
        if not self.supports_conditional_writes:
            return await super().patch_if(table, record_id, expected, fields)

        await asyncio.sleep(0)
        record = self._table(table).get(record_id)
        if record is None:
            return None
        if any(record.fields.get(k) != v for k, v in expected.items()):
            return None
        record.fields.update(copy.deepcopy(fields))
        self.operations.append(("patch", table, record_id))
        return self._copy(record)

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def writes(self, table: str | None = None) -> list[tuple[str, str, str | None]]:
        """Create and patch operations, optionally for one table."""
        return [
            op for op in self.operations
            if op[0] in ("create", "patch") and (table is None or op[1] == table)
        ]

    def dump(self, table: str) -> list[Record]:
        """Snapshot of every record in a table."""
        return [self._copy(r) for r in self._table(table).values()]
