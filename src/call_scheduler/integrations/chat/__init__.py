"""Chat subsystem delivery."""

from call_scheduler.integrations.chat.base import ChatDelivery, ChatSink, LoggingChatSink
from call_scheduler.integrations.chat.factory import get_chat_sink, reset_chat_sink

__all__ = [
    "ChatDelivery",
    "ChatSink",
    "LoggingChatSink",
    "get_chat_sink",
    "reset_chat_sink",
]
