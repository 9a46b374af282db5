"""Tests for the in-memory record store."""

from __future__ import annotations

import pytest

from call_scheduler.core.exceptions import RecordNotFoundError
from call_scheduler.db.filters import Eq
from call_scheduler.db.memory import InMemoryRecordStore


class TestInMemoryRecordStore:
    """Test InMemoryRecordStore behaviour."""

    @pytest.mark.asyncio
    async def test_create_assigns_record_ids(self, store):
        first = await store.create("T", {"a": 1})
        second = await store.create("T", {"a": 2})

        assert first.id.startswith("rec")
        assert first.id != second.id
        assert first.created_time is not None

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store):
        assert await store.get("T", "recNOPE") is None

    @pytest.mark.asyncio
    async def test_patch_merges_fields(self, store):
        record = await store.create("T", {"a": 1, "b": 2})

        updated = await store.patch("T", record.id, {"b": 3, "c": 4})

        assert updated.fields == {"a": 1, "b": 3, "c": 4}

    @pytest.mark.asyncio
    async def test_patch_missing_raises(self, store):
        with pytest.raises(RecordNotFoundError):
            await store.patch("T", "recNOPE", {"a": 1})

    @pytest.mark.asyncio
    async def test_list_applies_filter(self, store):
        await store.create("T", {"status": "pending"})
        await store.create("T", {"status": "failed"})

        pending = await store.list("T", Eq("status", "pending"))
        everything = await store.list("T")

        assert [r.fields["status"] for r in pending] == ["pending"]
        assert len(everything) == 2

    @pytest.mark.asyncio
    async def test_returns_copies(self, store):
        record = await store.create("T", {"tags": ["x"]})

        fetched = await store.get("T", record.id)
        fetched.fields["tags"].append("y")

        again = await store.get("T", record.id)
        assert again.fields["tags"] == ["x"]

    @pytest.mark.asyncio
    async def test_tables_are_separate(self, store):
        record = await store.create("A", {"a": 1})

        assert await store.get("B", record.id) is None

    @pytest.mark.asyncio
    async def test_patch_if_disabled_by_default(self, store):
        record = await store.create("T", {"status": "pending"})

        assert store.supports_conditional_writes is False
        with pytest.raises(NotImplementedError):
            await store.patch_if("T", record.id, {"status": "pending"}, {"status": "x"})

    @pytest.mark.asyncio
    async def test_patch_if_checks_precondition(self):
        store = InMemoryRecordStore(conditional_writes=True)
        record = await store.create("T", {"status": "pending"})

        won = await store.patch_if("T", record.id, {"status": "pending"}, {"status": "executing"})
        lost = await store.patch_if("T", record.id, {"status": "pending"}, {"status": "executing"})

        assert won is not None
        assert won.fields["status"] == "executing"
        assert lost is None

    @pytest.mark.asyncio
    async def test_writes_log(self, store):
        record = await store.create("T", {"a": 1})
        await store.get("T", record.id)
        await store.patch("T", record.id, {"a": 2})

        assert store.writes("T") == [("create", "T", record.id), ("patch", "T", record.id)]
