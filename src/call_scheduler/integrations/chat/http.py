"""HTTP chat sink.

POSTs each call result as JSON to the chat subsystem:

    {"threadId": "...", "recordId": "...", "outcome": "completed", "callId": "..."}
"""
from __future__ import annotations

import httpx

from call_scheduler.core.exceptions import ChatDeliveryError
from call_scheduler.core.logging import get_logger
from call_scheduler.integrations.chat.base import ChatDelivery, ChatSink

log = get_logger(__name__)


class HttpChatSink(ChatSink):
    """Deliver call results to a chat webhook URL."""

    def __init__(self, url: str, timeout: float = 10.0):
        self.url = url
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )

    async def deliver(self, delivery: ChatDelivery) -> None:
        try:
            response = await self._client.post(self.url, json=delivery.to_dict())
        except httpx.HTTPError as e:
            log.error(
                "Chat delivery HTTP error",
                error=str(e),
                thread_id=delivery.thread_id,
            )
            raise ChatDeliveryError(
                "Chat subsystem unreachable",
                details={"thread_id": delivery.thread_id},
                cause=e,
            ) from e

        if response.status_code >= 400:
            log.error(
                "Chat delivery rejected",
                status_code=response.status_code,
                thread_id=delivery.thread_id,
            )
            raise ChatDeliveryError(
                f"Chat subsystem rejected delivery (HTTP {response.status_code})",
                details={
                    "thread_id": delivery.thread_id,
                    "status_code": response.status_code,
                },
            )

        log.info(
            "Call result delivered to chat",
            thread_id=delivery.thread_id,
            call_id=delivery.call_id,
            outcome=delivery.outcome,
        )

    async def close(self) -> None:
        await self._client.aclose()
