"""Outbound call correlation repository.

Maps an external call id to the conversation waiting for its result.
Created by the executor once the platform accepts a call; updated by
the completion relay. Records are never deleted here.
"""
from __future__ import annotations

from datetime import datetime

from call_scheduler.core.clock import Clock, format_timestamp, utcnow
from call_scheduler.core.exceptions import LinkedRecordNotFoundError, ValidationError
from call_scheduler.core.logging import get_logger
from call_scheduler.db.claim import optimistic_claim
from call_scheduler.db.filters import Eq
from call_scheduler.db.models import CorrelationStatus, OutboundCallRequest
from call_scheduler.db.repositories.base import BaseRepository
from call_scheduler.db.store import RecordStore

log = get_logger(__name__)

_OPEN_STATUSES = tuple(s.value for s in CorrelationStatus if not s.is_terminal)


class CorrelationRepository(BaseRepository[OutboundCallRequest]):
    """Repository for outbound call correlation records.

    Args:
        store: Record store backend
        table: Correlations table name
        owners_table: Table the ``record_id`` relation points into
        verify_links: Check the owner record exists before creating
        clock: Source of ``created_at``
    """

    def __init__(
        self,
        store: RecordStore,
        table: str = "OutboundCallRequest",
        *,
        owners_table: str = "Users",
        verify_links: bool = True,
        clock: Clock = utcnow,
    ):
        super().__init__(OutboundCallRequest, store, table)
        self.owners_table = owners_table
        self.verify_links = verify_links
        self._clock = clock

    async def create_for_call(
        self,
        call_id: str,
        record_id: str,
        thread_id: str,
        phone_number: str | None = None,
    ) -> OutboundCallRequest:
        """Insert a pending correlation for a freshly placed call.

        Raises:
            ValidationError: If an identifier is empty
            LinkedRecordNotFoundError: If the owner record does not exist
        """
        missing = [
            name
            for name, value in (
                ("call_id", call_id),
                ("record_id", record_id),
                ("thread_id", thread_id),
            )
            if not value
        ]
        if missing:
            raise ValidationError(
                f"Missing correlation fields: {', '.join(missing)}",
                details={"missing": missing},
            )

        if self.verify_links:
            owner = await self._store.get(self.owners_table, record_id)
            if owner is None:
                raise LinkedRecordNotFoundError(
                    f"Linked record {record_id} not found",
                    details={"table": self.owners_table, "record_id": record_id},
                )

        correlation = await self.create(
            OutboundCallRequest(
                call_id=call_id,
                record_id=record_id,
                thread_id=thread_id,
                status=CorrelationStatus.PENDING,
                created_at=self._clock(),
                phone_number=phone_number,
            )
        )
        log.info(
            "Correlation created",
            call_id=call_id,
            thread_id=thread_id,
            correlation_id=correlation.id,
        )
        return correlation

    async def find_by_call_id(self, call_id: str) -> OutboundCallRequest | None:
        """Look up the correlation for an external call id."""
        if not call_id:
            return None
        return await self.find_one(Eq("call_id", call_id))

    async def update_status(
        self,
        call_id: str,
        status: CorrelationStatus | str,
        completed_at: datetime | None = None,
        *,
        current: OutboundCallRequest | None = None,
    ) -> OutboundCallRequest | None:
        """Move the call's correlation out of pending / in-call.

        Terminal states never change: the write goes through the same
        read-write-verify claim as tasks, so of several concurrent
        updates exactly one takes effect.

        Args:
            call_id: External call id
            status: New status
            completed_at: Completion time to record
            current: Correlation the caller already looked up

        Returns:
            Updated correlation, or None when no record has this call id,
            the correlation is already terminal or a concurrent update won
        """
        correlation = current or await self.find_by_call_id(call_id)
        if correlation is None or correlation.status.is_terminal:
            return None

        fields: dict[str, str] = {}
        if completed_at is not None:
            fields["completed_at"] = format_timestamp(completed_at)

        result = await optimistic_claim(
            self._store,
            self._table,
            correlation.id,
            _OPEN_STATUSES,
            CorrelationStatus(status).value,
            extra_fields=fields,
        )
        if not result.claimed:
            log.info(
                "Correlation not updated",
                call_id=call_id,
                reason=result.reason,
            )
            return None
        return OutboundCallRequest.from_record(result.record)
