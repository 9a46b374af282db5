"""Phone number and message helpers for outbound calls."""

from __future__ import annotations

import re

from call_scheduler.core.exceptions import InvalidPhoneNumberError

_NON_DIGIT_RE = re.compile(r"\D")

# Tried in order; first capture group is the name
_RECIPIENT_PATTERNS = (
    re.compile(r"(?:call|Call|CALL)\s+(?:my\s+)?(?:friend\s+)?([A-Z][a-z]+)"),
    re.compile(r"(?:to|To|TO)\s+([A-Z][a-z]+)"),
    re.compile(r"^([A-Z][a-z]+)(?:\s|,|\.|$)"),
)


def format_e164(phone: str | None) -> str:
    """Normalize a phone number to E.164.

    North American numbers without a country code get ``+1``:
      - ``(555) 123-4567`` -> ``+15551234567``
      - ``15551234567`` -> ``+15551234567``
      - ``+49 170 1234567`` -> ``+491701234567``

    Args:
        phone: Phone number in any common format

    Returns:
        Phone number in E.164 format

    Raises:
        InvalidPhoneNumberError: If fewer than 10 digits remain
    """
    raw = (phone or "").strip()
    if not raw:
        raise InvalidPhoneNumberError("Missing phone number")

    digits = _NON_DIGIT_RE.sub("", raw)
    if len(digits) < 10:
        raise InvalidPhoneNumberError(
            "Invalid phone number format", details={"phone_number": raw}
        )

    if raw.startswith("+"):
        return f"+{digits}"
    if len(digits) == 10:
        return f"+1{digits}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"
    if len(digits) > 11:
        return f"+{digits}"
    return f"+1{digits}"


def extract_recipient_name(message: str | None) -> str | None:
    """Guess who is being called from the call instruction.

    Recognises "Call Ali ...", "call my friend Ali", "... to Ali" and a
    capitalised name at the start of the message.

    Returns:
        The name, or None when nothing plausible is found
    """
    if not message:
        return None

    for pattern in _RECIPIENT_PATTERNS:
        match = pattern.search(message)
        if match:
            name = match.group(1).strip()
            if 2 <= len(name) <= 20:
                return name
    return None
