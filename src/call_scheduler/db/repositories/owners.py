"""Owner (user) repository.

Owners are maintained by the rest of the product; the scheduler only
reads them to introduce the call on the owner's behalf.
"""
from __future__ import annotations

from call_scheduler.db.filters import Eq
from call_scheduler.db.models import OwnerProfile
from call_scheduler.db.repositories.base import BaseRepository
from call_scheduler.db.store import RecordStore


class OwnerRepository(BaseRepository[OwnerProfile]):
    """Repository for owner records."""

    def __init__(self, store: RecordStore, table: str = "Users"):
        super().__init__(OwnerProfile, store, table)

    async def find_by_agent_id(self, agent_id: str) -> OwnerProfile | None:
        """Get the owner whose voice agent has this id."""
        if not agent_id:
            return None
        return await self.find_one(Eq("vapi_agent_id", agent_id))
