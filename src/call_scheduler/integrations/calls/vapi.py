"""Vapi Call Provider Implementation.

Places outbound calls through the Vapi voice-agent platform. The
assistant is configured on the Vapi side; per-call context travels in
``assistantOverrides.variableValues`` which the assistant prompt reads.

Completion is reported later through the call-completed webhook.

API Documentation: https://docs.vapi.ai/api-reference/calls/create
"""
from __future__ import annotations

from typing import Any

import httpx

from call_scheduler.core.exceptions import CallPlacementError, CallPlacementTimeoutError
from call_scheduler.core.logging import get_logger
from call_scheduler.integrations.calls.base import (
    CallPlacementProvider,
    CallPlacementRequest,
    CallPlacementResult,
)
from call_scheduler.integrations.calls.scripts import (
    DEFAULT_ASSISTANT_NAME,
    DEFAULT_OWNER_NAME,
    build_greeting,
    build_voicemail_message,
)

log = get_logger(__name__)


class VapiCallProvider(CallPlacementProvider):
    """Vapi call placement.

    Attributes:
        api_url: Vapi API root
        timeout: HTTP request timeout
    """

    name = "vapi"
    API_BASE = "https://api.vapi.ai"

    def __init__(
        self,
        private_key: str,
        api_url: str | None = None,
        timeout: float = 30.0,
    ):
        """Initialize Vapi provider.

        Args:
            private_key: Vapi private API key
            api_url: API root, defaults to the public endpoint
            timeout: HTTP request timeout
        """
        self.api_url = (api_url or self.API_BASE).rstrip("/")
        self.timeout = timeout

        self._client = httpx.AsyncClient(
            base_url=self.api_url,
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {private_key}",
                "Content-Type": "application/json",
            },
        )

    def build_payload(self, request: CallPlacementRequest) -> dict[str, Any]:
        """Build the ``POST /call`` body."""
        owner_name = request.owner_name or request.caller_name or DEFAULT_OWNER_NAME
        assistant_name = request.assistant_name or DEFAULT_ASSISTANT_NAME
        greeting = build_greeting(owner_name, assistant_name, request.recipient_name)
        voicemail = build_voicemail_message(
            owner_name,
            assistant_name,
            request.message,
            owner_phone=request.owner_phone,
            recipient_name=request.recipient_name,
        )

        payload: dict[str, Any] = {
            "customer": {"number": request.phone_number},
            "assistantId": request.owner_agent_id,
            "assistantOverrides": {
                # Outbound calls wait for the callee to speak first
                "firstMessage": None,
                "firstMessageMode": "assistant-waits-for-user",
                # Names below are referenced by the assistant prompt
                "variableValues": {
                    "isOutboundCall": "true",
                    "greeting": greeting,
                    "recipientName": request.recipient_name or "",
                    "message": request.message,
                    "callerName": request.caller_name or "",
                    "ownerName": owner_name,
                    "kendallName": assistant_name,
                    "voicemailMessage": voicemail,
                    "ownerPhone": request.owner_phone or "",
                },
                "voicemailMessage": voicemail,
            },
            "metadata": {
                **request.metadata,
                "message": request.message,
                "callerName": request.caller_name or owner_name,
                "recipientName": request.recipient_name,
                "isOutboundCall": True,
                "ownerName": owner_name,
                "kendallName": assistant_name,
                "greeting": greeting,
                "ownerPhone": request.owner_phone,
            },
        }
        # Without it Vapi uses the assistant's default number
        if request.phone_number_id:
            payload["phoneNumberId"] = request.phone_number_id
        return payload

    async def place_call(self, request: CallPlacementRequest) -> CallPlacementResult:
        """Place a call via the Vapi API.

        Raises:
            CallPlacementTimeoutError: If Vapi does not answer in time
            CallPlacementError: On transport failure or a non-2xx response
        """
        payload = self.build_payload(request)

        try:
            response = await self._client.post("/call", json=payload)
        except httpx.TimeoutException as e:
            log.error("Vapi call timeout", to=request.phone_number)
            raise CallPlacementTimeoutError(
                "Call placement request timed out", cause=e
            ) from e
        except httpx.HTTPError as e:
            log.error("Vapi call HTTP error", error=str(e), to=request.phone_number)
            raise CallPlacementError(
                f"Call placement request failed: {e}", cause=e
            ) from e

        if response.status_code not in (200, 201):
            # Error response - safely parse JSON
            try:
                error_data = response.json() if response.content else {}
            except (ValueError, TypeError):
                error_data = {}

            log.error(
                "Vapi call failed",
                status_code=response.status_code,
                error=error_data,
                to=request.phone_number,
            )
            raise CallPlacementError(
                f"Vapi call failed: {error_data or f'HTTP {response.status_code}'}",
                details={"status_code": response.status_code, "response": error_data},
            )

        result_data = response.json()
        call_id = result_data.get("id") or result_data.get("callId") or ""
        if not call_id:
            raise CallPlacementError(
                "Vapi accepted the call but returned no call id",
                details={"response": result_data},
            )

        status = result_data.get("status") or "initiated"
        log.info(
            "Call placed via Vapi",
            call_id=call_id,
            to=request.phone_number,
            status=status,
        )
        return CallPlacementResult(call_id=call_id, status=status, provider=self.name)

    async def close(self) -> None:
        await self._client.aclose()
