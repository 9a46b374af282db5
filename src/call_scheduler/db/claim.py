"""Optimistic claim over a store without compare-and-swap.

The record store cannot make "set status to X only if it is still Y"
atomic, so a claim is read, write, then verify:

1. Read the record. If its status is not one we may claim from, stop
   without writing.
2. Write the target status together with a fresh random claim token.
3. Read the record again. The claim holds only if it still shows the
   target status and *our* token. When two claimers race, the later
   write overwrites the earlier token, so at most one verifies.

A writer whose PATCH lands after its rival's verification read can
still slip through; that window is accepted. Stores that support
conditional writes replace steps 1-3 with a single ``patch_if``.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Any, Callable

from call_scheduler.core.logging import get_logger
from call_scheduler.db.store import Record, RecordStore

log = get_logger(__name__)

STATUS_FIELD = "status"
TOKEN_FIELD = "claim_token"


@dataclass
class ClaimResult:
    """Outcome of a claim attempt."""

    record: Record | None
    token: str | None = None
    # Status the record was claimed from (the expected status that matched)
    previous_status: str | None = None
    reason: str | None = None

    @property
    def claimed(self) -> bool:
        return self.record is not None


def new_claim_token() -> str:
    return secrets.token_hex(16)


async def optimistic_claim(
    store: RecordStore,
    table: str,
    record_id: str,
    expected_status: str | tuple[str, ...],
    target_status: str,
    *,
    extra_fields: Callable[[Record], dict[str, Any]] | dict[str, Any] | None = None,
    eligible: Callable[[Record], bool] | None = None,
) -> ClaimResult:
    """Move a record from an expected status to a target status.

    Args:
        store: Record store
        table: Table holding the record
        record_id: Record to claim
        expected_status: Status (or statuses) the record must currently have
        target_status: Status to write on success
        extra_fields: Additional fields written with the claim; a callable
            receives the freshly read record (for counters)
        eligible: Further check on the freshly read record; False means
            do not claim

    Returns:
        ClaimResult; ``record`` is None when the claim was not won

    Raises:
        RecordStoreError: On store or network failure
    """
    expected = (expected_status,) if isinstance(expected_status, str) else expected_status
    token = new_claim_token()

    current = await store.get(table, record_id)
    if current is None:
        return ClaimResult(record=None, reason="not_found")

    status = current.fields.get(STATUS_FIELD)
    if status not in expected:
        return ClaimResult(record=None, reason=f"status_{status}")

    if eligible is not None and not eligible(current):
        return ClaimResult(record=None, reason="not_eligible")

    if callable(extra_fields):
        extra = extra_fields(current)
    else:
        extra = dict(extra_fields or {})
    fields = {**extra, STATUS_FIELD: target_status, TOKEN_FIELD: token}

    if store.supports_conditional_writes:
        precondition = {STATUS_FIELD: status}
        # Reclaims also pin the token so two reclaimers cannot both win
        if status == target_status:
            precondition[TOKEN_FIELD] = current.fields.get(TOKEN_FIELD)
        updated = await store.patch_if(table, record_id, precondition, fields)
        if updated is None:
            return ClaimResult(record=None, reason="precondition_failed")
        return ClaimResult(record=updated, token=token, previous_status=status)

    await store.patch(table, record_id, fields)

    verified = await store.get(table, record_id)
    if (
        verified is None
        or verified.fields.get(STATUS_FIELD) != target_status
        or verified.fields.get(TOKEN_FIELD) != token
    ):
        log.info(
            "Claim lost to concurrent writer",
            table=table,
            record_id=record_id,
        )
        return ClaimResult(record=None, reason="lost_race")

    return ClaimResult(record=verified, token=token, previous_status=status)
