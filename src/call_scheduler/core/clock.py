"""Time helpers.

All timestamps are timezone-aware UTC and are stored as ISO-8601 strings.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

# Injectable "now" source; services take one so tests can freeze time
Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Accepts ``Z`` suffixes and explicit offsets. Naive values are taken
    as UTC.

    Returns:
        Parsed datetime, or None for empty or unparseable input
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Format a datetime the way the record store expects (UTC, ``Z``)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")
