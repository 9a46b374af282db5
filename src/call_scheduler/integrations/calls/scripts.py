"""What the voice agent says when it places a call.

The assistant introduces itself on the owner's behalf:

    Hi Ali, I'm Kendall, Dana's assistant. How are you?

and leaves a voicemail when nobody picks up.
"""

from __future__ import annotations

DEFAULT_OWNER_NAME = "the owner"
DEFAULT_ASSISTANT_NAME = "Kendall"
DEFAULT_VOICEMAIL_BODY = "I was calling with a quick update for you."


def build_greeting(
    owner_name: str | None,
    assistant_name: str | None,
    recipient_name: str | None = None,
) -> str:
    """Opening line; ``Hi there`` when the recipient is unknown."""
    owner = (owner_name or DEFAULT_OWNER_NAME).strip()
    assistant = (assistant_name or DEFAULT_ASSISTANT_NAME).strip()
    salutation = f"Hi {recipient_name}" if recipient_name else "Hi there"
    return f"{salutation}, I'm {assistant}, {owner}'s assistant. How are you?"


def build_voicemail_message(
    owner_name: str | None,
    assistant_name: str | None,
    message: str | None,
    owner_phone: str | None = None,
    recipient_name: str | None = None,
) -> str:
    """Voicemail text, with a callback line when the owner's number is known."""
    owner = (owner_name or DEFAULT_OWNER_NAME).strip()
    assistant = (assistant_name or DEFAULT_ASSISTANT_NAME).strip()
    recipient = (recipient_name or "there").strip()
    body = (message or "").strip() or DEFAULT_VOICEMAIL_BODY

    callback = f" You can call or text {owner_phone} when you get this." if owner_phone else ""
    return f"Hi {recipient}, this is {assistant} calling for {owner}. {body}{callback}".strip()
