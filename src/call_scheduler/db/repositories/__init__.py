"""Repository Layer for the call scheduler.

Base:
- BaseRepository: Generic record operations

Specialized:
- TaskRepository: Scheduled call tasks and the claim protocol
- CorrelationRepository: Call id to conversation correlation
- OwnerRepository: Owner lookup by voice agent id
"""

from call_scheduler.db.repositories.base import BaseRepository
from call_scheduler.db.repositories.correlations import CorrelationRepository
from call_scheduler.db.repositories.owners import OwnerRepository
from call_scheduler.db.repositories.tasks import TaskRepository

__all__ = [
    "BaseRepository",
    "TaskRepository",
    "CorrelationRepository",
    "OwnerRepository",
]
