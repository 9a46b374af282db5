"""Chat Sink Factory.

Uses the HTTP sink when a chat webhook URL is configured, otherwise
results are only logged.
"""

from __future__ import annotations

from call_scheduler.config import get_settings
from call_scheduler.core.logging import get_logger
from call_scheduler.integrations.chat.base import ChatSink, LoggingChatSink

log = get_logger(__name__)


# Singleton instance
_chat_sink: ChatSink | None = None


def get_chat_sink() -> ChatSink:
    """Get the configured chat sink."""
    global _chat_sink

    if _chat_sink is not None:
        return _chat_sink

    chat_config = get_settings().chat

    if chat_config.webhook_url:
        from call_scheduler.integrations.chat.http import HttpChatSink

        _chat_sink = HttpChatSink(
            url=chat_config.webhook_url,
            timeout=chat_config.timeout_seconds,
        )
        log.info("HTTP chat sink initialized")
    else:
        _chat_sink = LoggingChatSink()
        log.info("No chat webhook configured, logging call results only")

    return _chat_sink


def reset_chat_sink() -> None:
    """Reset the chat sink (for testing)."""
    global _chat_sink
    _chat_sink = None
