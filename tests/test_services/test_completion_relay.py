"""Tests for the call completion relay."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from call_scheduler.core.exceptions import ChatDeliveryError
from call_scheduler.db.models import CorrelationStatus
from call_scheduler.integrations.chat.base import ChatSink, LoggingChatSink
from call_scheduler.services.completion_relay import (
    CallCompletedEvent,
    CompletionRelay,
    RelayOutcome,
)


class FailingChatSink(ChatSink):
    async def deliver(self, delivery):
        raise ChatDeliveryError("chat down")


@pytest.fixture
def chat_sink():
    return LoggingChatSink()


@pytest.fixture
def relay(correlation_repository, chat_sink, clock):
    return CompletionRelay(correlations=correlation_repository, sink=chat_sink, clock=clock)



class TestCompletionRelay:
    """Test CompletionRelay.handle."""

    @pytest.mark.asyncio
    async def test_unknown_call_dropped(self, relay, store, chat_sink):
        writes_before = len(store.writes())

        outcome = await relay.handle(CallCompletedEvent(call_id="xyz", outcome="completed"))

        assert outcome == RelayOutcome.DROPPED
        assert len(store.writes()) == writes_before
        assert chat_sink.delivered == []
        assert relay.metrics.dropped == 1

    @pytest.mark.asyncio
    async def test_delivers_to_thread(
        self, relay, correlation_repository, owner_record, chat_sink, clock
    ):
        await correlation_repository.create_for_call(
            call_id="abc", record_id=owner_record.id, thread_id="thread-1"
        )
        completed_at = clock.now + timedelta(minutes=2)

        outcome = await relay.handle(
            CallCompletedEvent(call_id="abc", outcome="completed", completed_at=completed_at)
        )

        assert outcome == RelayOutcome.DELIVERED
        [delivery] = chat_sink.delivered
        assert delivery.to_dict() == {
            "threadId": "thread-1",
            "recordId": owner_record.id,
            "outcome": "completed",
            "callId": "abc",
        }
        stored = await correlation_repository.find_by_call_id("abc")
        assert stored.status == CorrelationStatus.COMPLETED
        assert stored.completed_at == completed_at

    @pytest.mark.asyncio
    async def test_completed_at_defaults_to_now(
        self, relay, correlation_repository, owner_record, clock
    ):
        await correlation_repository.create_for_call(
            call_id="abc", record_id=owner_record.id, thread_id="thread-1"
        )

        await relay.handle(CallCompletedEvent(call_id="abc", outcome="failed"))

        stored = await correlation_repository.find_by_call_id("abc")
        assert stored.status == CorrelationStatus.FAILED
        assert stored.completed_at == clock.now

    @pytest.mark.asyncio
    async def test_delivery_failure_still_updates(
        self, correlation_repository, owner_record, clock
    ):
        relay = CompletionRelay(correlation_repository, FailingChatSink(), clock=clock)
        await correlation_repository.create_for_call(
            call_id="abc", record_id=owner_record.id, thread_id="thread-1"
        )

        outcome = await relay.handle(CallCompletedEvent(call_id="abc", outcome="completed"))

        assert outcome == RelayOutcome.DELIVERY_FAILED
        stored = await correlation_repository.find_by_call_id("abc")
        assert stored.status == CorrelationStatus.COMPLETED
        assert relay.metrics.delivery_failed == 1

    @pytest.mark.asyncio
    async def test_second_completion_is_ignored(
        self, relay, correlation_repository, owner_record, chat_sink, store
    ):
        await correlation_repository.create_for_call(
            call_id="abc", record_id=owner_record.id, thread_id="thread-1"
        )

        first = await relay.handle(CallCompletedEvent(call_id="abc", outcome="completed"))
        writes_after_first = len(store.writes())
        second = await relay.handle(CallCompletedEvent(call_id="abc", outcome="failed"))

        assert first == RelayOutcome.DELIVERED
        assert second == RelayOutcome.DUPLICATE
        assert [d.outcome for d in chat_sink.delivered] == ["completed"]
        assert len(store.writes()) == writes_after_first
        stored = await correlation_repository.find_by_call_id("abc")
        assert stored.status == CorrelationStatus.COMPLETED
        assert relay.metrics.duplicate == 1

    @pytest.mark.asyncio
    async def test_concurrent_completions_deliver_once(
        self, relay, correlation_repository, owner_record, chat_sink
    ):
        await correlation_repository.create_for_call(
            call_id="abc", record_id=owner_record.id, thread_id="thread-1"
        )

        outcomes = await asyncio.gather(
            relay.handle(CallCompletedEvent(call_id="abc", outcome="completed")),
            relay.handle(CallCompletedEvent(call_id="abc", outcome="failed")),
            relay.handle(CallCompletedEvent(call_id="abc", outcome="completed")),
        )

        assert sorted(o.value for o in outcomes) == ["delivered", "duplicate", "duplicate"]
        [delivery] = chat_sink.delivered
        stored = await correlation_repository.find_by_call_id("abc")
        assert stored.status.value == delivery.outcome
