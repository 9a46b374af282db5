"""Base Repository Pattern for the call scheduler.

Provides generic record operations on top of a RecordStore.
All specialized repositories inherit from BaseRepository.
"""
from __future__ import annotations

from typing import Any, Generic, Protocol, TypeVar

from call_scheduler.core.exceptions import RecordNotFoundError
from call_scheduler.db.filters import Filter
from call_scheduler.db.store import Record, RecordStore


class StoredModel(Protocol):
    id: str | None

    @classmethod
    def from_record(cls, record: Record) -> Any: ...

    def to_fields(self) -> dict[str, Any]: ...


# Type variable for model classes
ModelT = TypeVar("ModelT", bound=StoredModel)


class BaseRepository(Generic[ModelT]):
    """Generic base repository over one table of the record store.

    Models convert themselves with ``from_record()`` and ``to_fields()``.
    Specialized repositories add domain-specific queries.

    Usage:
        class TaskRepository(BaseRepository[ScheduledCallTask]):
            def __init__(self, store: RecordStore):
                super().__init__(ScheduledCallTask, store, "ScheduledCallTask")

            async def list_due(self, now: datetime) -> list[ScheduledCallTask]:
                ...
    """

    def __init__(self, model: type[ModelT], store: RecordStore, table: str):
        """Initialize repository with model class, store and table.

        Args:
            model: Model class with from_record/to_fields
            store: Record store backend
            table: Table name in the store
        """
        self._model = model
        self._store = store
        self._table = table

    @property
    def store(self) -> RecordStore:
        """Get the underlying record store."""
        return self._store

    @property
    def table(self) -> str:
        return self._table

    # ========================================================================
    # Basic Operations
    # ========================================================================

    async def get(self, id: str) -> ModelT | None:
        """Get a single record by ID.

        Returns:
            Model instance or None if not found
        """
        record = await self._store.get(self._table, id)
        return self._model.from_record(record) if record else None

    async def get_or_raise(self, id: str) -> ModelT:
        """Get a single record by ID, raising if not found.

        Raises:
            RecordNotFoundError: If record not found
        """
        obj = await self.get(id)
        if obj is None:
            raise RecordNotFoundError(
                f"{self._model.__name__} with id {id} not found",
                details={"table": self._table, "record_id": id},
            )
        return obj

    async def create(self, obj_in: ModelT) -> ModelT:
        """Create a new record.

        Returns:
            Created model instance with the store-assigned ID
        """
        record = await self._store.create(self._table, obj_in.to_fields())
        return self._model.from_record(record)

    async def update(self, id: str, obj_in: dict[str, Any]) -> ModelT:
        """Patch fields of a record by ID.

        Args:
            id: Record id
            obj_in: Store fields to update

        Returns:
            Updated model instance

        Raises:
            RecordNotFoundError: If record not found
        """
        record = await self._store.patch(self._table, id, obj_in)
        return self._model.from_record(record)

    # ========================================================================
    # Query Helpers
    # ========================================================================

    async def find(self, filter: Filter | None = None) -> list[ModelT]:
        """Get all records matching a filter."""
        records = await self._store.list(self._table, filter)
        return [self._model.from_record(r) for r in records]

    async def find_one(self, filter: Filter) -> ModelT | None:
        """Get the first record matching a filter."""
        found = await self.find(filter)
        return found[0] if found else None
