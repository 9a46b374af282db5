"""Tests for Vapi call placement."""

from __future__ import annotations

from unittest.mock import MagicMock

import httpx
import pytest

from call_scheduler.core.exceptions import CallPlacementError, CallPlacementTimeoutError


class TestVapiPayload:
    """Test the POST /call body."""

    def test_client_configuration(self, mock_http_client, vapi_provider):
        kwargs = mock_http_client.call_args.kwargs

        assert kwargs["base_url"] == "https://api.vapi.ai"
        assert kwargs["headers"]["Authorization"] == "Bearer vapi_test_key"

    def test_payload(self, vapi_provider, placement_request):
        payload = vapi_provider.build_payload(placement_request)

        assert payload["customer"] == {"number": "+15551234567"}
        assert payload["assistantId"] == "asst_123"
        overrides = payload["assistantOverrides"]
        assert overrides["firstMessage"] is None
        assert overrides["firstMessageMode"] == "assistant-waits-for-user"
        voicemail = "Hi Ali, this is Kendall calling for Dana. Call Ali to confirm dinner at 7"
        assert overrides["variableValues"] == {
            "isOutboundCall": "true",
            "greeting": "Hi Ali, I'm Kendall, Dana's assistant. How are you?",
            "recipientName": "Ali",
            "message": "Call Ali to confirm dinner at 7",
            "callerName": "Dana",
            "ownerName": "Dana",
            "kendallName": "Kendall",
            "voicemailMessage": voicemail,
            "ownerPhone": "",
        }
        assert overrides["voicemailMessage"] == voicemail
        assert payload["metadata"]["taskId"] == "rec00000000000001"
        assert payload["metadata"]["isOutboundCall"] is True
        assert "phoneNumberId" not in payload

    def test_payload_uses_owner_profile(self, vapi_provider, placement_request):
        placement_request.owner_name = "Dana Owner"
        placement_request.assistant_name = "Sam"
        placement_request.owner_phone = "+15550001111"

        payload = vapi_provider.build_payload(placement_request)

        variables = payload["assistantOverrides"]["variableValues"]
        assert variables["greeting"] == "Hi Ali, I'm Sam, Dana Owner's assistant. How are you?"
        assert variables["voicemailMessage"].endswith(
            "You can call or text +15550001111 when you get this."
        )
        assert variables["ownerPhone"] == "+15550001111"
        assert payload["metadata"]["kendallName"] == "Sam"
        # Task caller name still wins for the thread-facing label
        assert payload["metadata"]["callerName"] == "Dana"

    def test_payload_without_names(self, vapi_provider, placement_request):
        placement_request.caller_name = None
        placement_request.recipient_name = None

        payload = vapi_provider.build_payload(placement_request)

        variables = payload["assistantOverrides"]["variableValues"]
        assert variables["greeting"] == "Hi there, I'm Kendall, the owner's assistant. How are you?"
        assert variables["recipientName"] == ""
        assert payload["metadata"]["callerName"] == "the owner"

    def test_payload_with_caller_line(self, vapi_provider, placement_request):
        placement_request.phone_number_id = "pn_42"

        payload = vapi_provider.build_payload(placement_request)

        assert payload["phoneNumberId"] == "pn_42"


class TestVapiPlaceCall:
    """Test VapiCallProvider.place_call."""

    @pytest.mark.asyncio
    async def test_success(self, mock_http_client, vapi_provider, placement_request):
        result = await vapi_provider.place_call(placement_request)

        assert result.call_id == "call_123"
        assert result.status == "queued"
        assert result.provider == "vapi"
        path = mock_http_client.client.post.call_args.args[0]
        assert path == "/call"

    @pytest.mark.asyncio
    async def test_call_id_fallback(self, mock_http_client, vapi_provider, placement_request):
        mock_http_client.client.post.return_value.json.return_value = {"callId": "call_456"}

        result = await vapi_provider.place_call(placement_request)

        assert result.call_id == "call_456"
        assert result.status == "initiated"

    @pytest.mark.asyncio
    async def test_missing_call_id(self, mock_http_client, vapi_provider, placement_request):
        mock_http_client.client.post.return_value.json.return_value = {"status": "queued"}

        with pytest.raises(CallPlacementError):
            await vapi_provider.place_call(placement_request)

    @pytest.mark.asyncio
    async def test_error_response(self, mock_http_client, vapi_provider, placement_request):
        error_response = MagicMock()
        error_response.status_code = 400
        error_response.content = b'{"message": "assistant not found"}'
        error_response.json.return_value = {"message": "assistant not found"}
        mock_http_client.client.post.return_value = error_response

        with pytest.raises(CallPlacementError) as exc_info:
            await vapi_provider.place_call(placement_request)

        assert "assistant not found" in exc_info.value.message
        assert exc_info.value.details["status_code"] == 400

    @pytest.mark.asyncio
    async def test_error_response_without_body(self, mock_http_client, vapi_provider, placement_request):
        error_response = MagicMock()
        error_response.status_code = 503
        error_response.content = b""
        mock_http_client.client.post.return_value = error_response

        with pytest.raises(CallPlacementError) as exc_info:
            await vapi_provider.place_call(placement_request)

        assert "HTTP 503" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_timeout(self, mock_http_client, vapi_provider, placement_request):
        mock_http_client.client.post.side_effect = httpx.TimeoutException("timeout")

        with pytest.raises(CallPlacementTimeoutError):
            await vapi_provider.place_call(placement_request)

    @pytest.mark.asyncio
    async def test_network_error(self, mock_http_client, vapi_provider, placement_request):
        mock_http_client.client.post.side_effect = httpx.ConnectError("connection refused")

        with pytest.raises(CallPlacementError) as exc_info:
            await vapi_provider.place_call(placement_request)

        assert "connection refused" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_close(self, mock_http_client, vapi_provider):
        await vapi_provider.close()

        mock_http_client.client.aclose.assert_awaited_once()
