"""Test fixtures for outbound integration tests."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest


@pytest.fixture
def mock_http_client():
    """Mock httpx client shared by Vapi and the chat sink."""
    with patch("httpx.AsyncClient") as mock:
        client = MagicMock()
        client.post = AsyncMock()
        client.aclose = AsyncMock()

        mock_response = MagicMock()
        mock_response.status_code = 201
        mock_response.content = b"{}"
        mock_response.json.return_value = {"id": "call_123", "status": "queued"}
        client.post.return_value = mock_response

        mock.return_value = client
        mock.client = client
        yield mock


@pytest.fixture
def vapi_provider(mock_http_client):
    from call_scheduler.integrations.calls.vapi import VapiCallProvider

    return VapiCallProvider(private_key="vapi_test_key")


@pytest.fixture
def placement_request():
    from call_scheduler.integrations.calls.base import CallPlacementRequest

    return CallPlacementRequest(
        phone_number="+15551234567",
        message="Call Ali to confirm dinner at 7",
        owner_agent_id="asst_123",
        caller_name="Dana",
        recipient_name="Ali",
        metadata={"taskId": "rec00000000000001"},
    )
