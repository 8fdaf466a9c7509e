"""
Participant Registry - Repository Interface

The only surface through which reconciliation and the HTTP layer touch
participant state. Implementations:
- InMemoryParticipantRepository (registry.memory_storage)
- SqlParticipantRepository (registry.db_storage)

Concurrency: each operation is atomic for its own record. Concurrent writes
to the same participant resolve as last-write-wins.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from registry.models import (
    Participant,
    ParticipantCreate,
    ParticipantFilter,
    ParticipantSort,
    ParticipantUpsert,
)


class ParticipantRepository(ABC):
    """Keyed store of participant records."""

    @abstractmethod
    async def upsert(self, record: ParticipantUpsert) -> Participant:
        """Create or update by email. Attendance and QR fields are never touched on update."""

    @abstractmethod
    async def create(self, record: ParticipantCreate) -> Participant:
        """Register a new participant. Raises DuplicateParticipantError if the email exists."""

    @abstractmethod
    async def get(self, participant_id: str) -> Optional[Participant]:
        """Get participant by ID"""

    @abstractmethod
    async def set_verified(self, participant_id: str, value: bool) -> Participant:
        """Manual verify/undo. Raises NotFoundError if the id is unknown."""

    @abstractmethod
    async def mark_attended(self, participant_id: str) -> Participant:
        """Mark attendance; idempotent, keeps the first attended_at. Raises NotFoundError."""

    @abstractmethod
    async def list_all(
        self,
        filters: Optional[ParticipantFilter] = None,
        sort: Optional[ParticipantSort] = None,
    ) -> List[Participant]:
        """List participants, newest first unless a sort is given."""

    @abstractmethod
    async def delete(self, participant_id: str) -> bool:
        """Delete one participant. Returns False if it did not exist."""

    @abstractmethod
    async def delete_all(self) -> int:
        """Irreversibly remove every participant. Returns the number removed."""
