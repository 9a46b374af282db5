"""Tests for the HTTP API."""

from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient

from call_scheduler.dependencies import (
    get_call_scheduler,
    get_completion_relay,
    get_task_repository,
)
from call_scheduler.integrations.chat.base import LoggingChatSink
from call_scheduler.main import create_app
from call_scheduler.services.call_scheduler import CallScheduler, SchedulerConfig
from call_scheduler.services.completion_relay import CompletionRelay


@pytest.fixture
def chat_sink():
    return LoggingChatSink()


@pytest.fixture
def scheduler(task_repository, executor, clock):
    return CallScheduler(
        tasks=task_repository,
        executor=executor,
        config=SchedulerConfig(max_concurrent_calls=2),
        clock=clock,
    )


@pytest.fixture
def relay(correlation_repository, chat_sink, clock):
    return CompletionRelay(correlation_repository, chat_sink, clock=clock)


@pytest.fixture
def client(scheduler, relay, task_repository):
    """Client over in-memory components; lifespan is not entered."""
    app = create_app()
    app.dependency_overrides[get_call_scheduler] = lambda: scheduler
    app.dependency_overrides[get_completion_relay] = lambda: relay
    app.dependency_overrides[get_task_repository] = lambda: task_repository
    return TestClient(app)


@pytest.fixture
def seeded_call(store, correlation_repository):
    """Correlation for call ``abc`` linked to an existing owner."""

    async def _seed():
        owner = await store.create("Users", {"fullName": "Dana Owner"})
        await correlation_repository.create_for_call(
            call_id="abc", record_id=owner.id, thread_id="thread-1"
        )
        return owner

    return asyncio.run(_seed())


TASK_PAYLOAD = {
    "phone_number": "(555) 123-4567",
    "message": "Call Ali to confirm dinner at 7",
    "scheduled_time": "2025-03-14T09:00:00Z",
    "owner_agent_id": "asst_123",
}


class TestHealth:
    """Test /health."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["checks"]["scheduler"] == "stopped"
        assert data["environment"] == "test"


class TestCallCompletedWebhook:
    """Test /api/v1/webhooks/call-completed."""

    def test_unknown_call_dropped(self, client, chat_sink):
        response = client.post(
            "/api/v1/webhooks/call-completed",
            json={"callId": "xyz", "outcome": "completed", "completedAt": "2025-03-14T09:35:00Z"},
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "outcome": "dropped"}
        assert chat_sink.delivered == []

    def test_known_call_delivered(self, client, seeded_call, chat_sink):
        response = client.post(
            "/api/v1/webhooks/call-completed",
            json={"callId": "abc", "outcome": "failed", "completedAt": "2025-03-14T09:35:00Z"},
        )

        assert response.status_code == 200
        assert response.json()["outcome"] == "delivered"
        [delivery] = chat_sink.delivered
        assert delivery.thread_id == "thread-1"
        assert delivery.record_id == seeded_call.id
        assert delivery.outcome == "failed"

    def test_redelivered_webhook_acknowledged_once(self, client, seeded_call, chat_sink):
        body = {"callId": "abc", "outcome": "completed", "completedAt": "2025-03-14T09:35:00Z"}

        first = client.post("/api/v1/webhooks/call-completed", json=body)
        second = client.post("/api/v1/webhooks/call-completed", json=body)

        assert first.json()["outcome"] == "delivered"
        assert second.status_code == 200
        assert second.json() == {"success": True, "outcome": "duplicate"}
        assert len(chat_sink.delivered) == 1

    def test_extra_keys_rejected(self, client):
        response = client.post(
            "/api/v1/webhooks/call-completed",
            json={
                "callId": "abc",
                "outcome": "completed",
                "completedAt": "2025-03-14T09:35:00Z",
                "transcript": "hello",
            },
        )

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    @pytest.mark.parametrize(
        "payload",
        [
            {"callId": "abc", "outcome": "busy", "completedAt": "2025-03-14T09:35:00Z"},
            {"callId": "", "outcome": "completed", "completedAt": "2025-03-14T09:35:00Z"},
            {"callId": "abc", "outcome": "completed"},
            {"callId": "abc", "outcome": "completed", "completedAt": "yesterday"},
        ],
    )
    def test_invalid_payload(self, client, payload):
        response = client.post("/api/v1/webhooks/call-completed", json=payload)

        assert response.status_code == 422


class TestSchedulerEndpoints:
    """Test /api/v1/scheduler/*."""

    @pytest.mark.parametrize("method", ["GET", "POST"])
    def test_execute_empty(self, client, method):
        response = client.request(method, "/api/v1/scheduler/execute")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["due"] == 0
        assert data["results"] == []

    def test_execute_runs_due_task(self, client, call_provider):
        created = client.post("/api/v1/tasks", json=TASK_PAYLOAD).json()

        data = client.post("/api/v1/scheduler/execute").json()

        assert data["completed"] == 1
        assert data["results"][0]["task_id"] == created["id"]
        assert data["results"][0]["call_id"] == "abc"
        assert call_provider.placed[0].phone_number == "+15551234567"
        assert client.get(f"/api/v1/tasks/{created['id']}").json()["status"] == "completed"

    def test_status(self, client):
        response = client.get("/api/v1/scheduler/status")

        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "stopped"
        assert data["relay"]["received"] == 0


class TestTaskEndpoints:
    """Test /api/v1/tasks."""

    def test_create_task(self, client):
        response = client.post("/api/v1/tasks", json=TASK_PAYLOAD)

        assert response.status_code == 201
        data = response.json()
        assert data["id"].startswith("rec")
        assert data["status"] == "pending"
        assert data["scheduled_time"] == "2025-03-14T09:00:00.000Z"

    def test_create_task_missing_field(self, client):
        payload = {k: v for k, v in TASK_PAYLOAD.items() if k != "owner_agent_id"}

        response = client.post("/api/v1/tasks", json=payload)

        assert response.status_code == 422

    def test_get_unknown_task(self, client):
        response = client.get("/api/v1/tasks/recMissing")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"
