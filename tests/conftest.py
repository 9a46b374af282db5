"""Pytest configuration and fixtures for call scheduler tests."""

from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

# Set test environment
os.environ["OCS_ENV"] = "test"
os.environ["OCS_DEBUG"] = "true"
os.environ["OCS_STORE__BACKEND"] = "memory"
os.environ["OCS_CALLS__PROVIDER"] = "mock"
os.environ["OCS_SCHEDULER__ENABLED"] = "false"


# Fixed "now" for deterministic scheduling
NOW = datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)


class FrozenClock:
    """Settable clock, injected wherever a service takes ``clock=``."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def store():
    """Fresh in-memory record store."""
    from call_scheduler.db.memory import InMemoryRecordStore

    return InMemoryRecordStore()


@pytest.fixture
def task_repository(store, clock):
    from call_scheduler.db.repositories.tasks import TaskRepository

    return TaskRepository(store, claim_timeout_seconds=900, clock=clock)


@pytest.fixture
def correlation_repository(store, clock):
    from call_scheduler.db.repositories.correlations import CorrelationRepository

    return CorrelationRepository(store, owners_table="Users", clock=clock)


@pytest_asyncio.fixture
async def owner_record(store):
    """Owner (user) record that correlations link to."""
    return await store.create("Users", {"fullName": "Dana Owner"})


@pytest.fixture
def call_provider():
    """Mock call provider that always answers with call id ``abc``."""
    from call_scheduler.integrations.calls.base import MockCallProvider

    return MockCallProvider(call_id="abc")


@pytest.fixture
def executor(task_repository, correlation_repository, call_provider, store, clock):
    """Executor without claim jitter so interleavings are deterministic."""
    from call_scheduler.db.repositories.owners import OwnerRepository
    from call_scheduler.services.call_executor import CallExecutor, ExecutorConfig

    return CallExecutor(
        tasks=task_repository,
        correlations=correlation_repository,
        provider=call_provider,
        config=ExecutorConfig(claim_jitter_seconds=0, placement_timeout_seconds=1.0),
        clock=clock,
        owners=OwnerRepository(store, "Users"),
    )


@pytest.fixture
def make_task(task_repository):
    """Factory inserting a pending task; fields can be overridden."""
    from call_scheduler.db.models import ScheduledCallTask

    async def _make(**overrides):
        values = {
            "phone_number": "(555) 123-4567",
            "message": "Call Ali to confirm dinner at 7",
            "scheduled_time": NOW - timedelta(minutes=1),
            "owner_agent_id": "asst_123",
        }
        values.update(overrides)
        return await task_repository.create(ScheduledCallTask(**values))

    return _make

