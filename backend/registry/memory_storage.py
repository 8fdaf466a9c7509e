"""
Participant Registry - In-Memory Storage

Process-local registry for development and tests. Every operation runs as one
critical section under a lock, so a record is never observed half-written.
"""

import logging
import threading
from typing import Dict, List, Optional

from registry.errors import DuplicateParticipantError, NotFoundError
from registry.models import (
    Participant,
    ParticipantCreate,
    ParticipantFilter,
    ParticipantSort,
    ParticipantUpsert,
    SortDirection,
    UPSERT_FIELDS,
    utc_now,
)
from registry.repository import ParticipantRepository

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ("name", "email", "phone_number", "reference_id")


def _matches(participant: Participant, filters: ParticipantFilter) -> bool:
    if filters.verified is not None and participant.verified != filters.verified:
        return False
    if filters.attended is not None and participant.attended != filters.attended:
        return False
    if filters.search:
        term = filters.search.lower()
        return any(
            term in (getattr(participant, field) or "").lower()
            for field in SEARCH_FIELDS
        )
    return True


class InMemoryParticipantRepository(ParticipantRepository):
    """Dictionary-backed participant registry."""

    def __init__(self):
        self._lock = threading.Lock()
        self._participants: Dict[str, Participant] = {}
        self._ids_by_email: Dict[str, str] = {}

    def _require(self, participant_id: str) -> Participant:
        participant = self._participants.get(participant_id)
        if participant is None:
            raise NotFoundError(participant_id)
        return participant

    async def upsert(self, record: ParticipantUpsert) -> Participant:
        with self._lock:
            existing_id = self._ids_by_email.get(record.email)
            if existing_id:
                existing = self._participants[existing_id]
                changes = {
                    field: getattr(record, field)
                    for field in UPSERT_FIELDS
                    if getattr(existing, field) != getattr(record, field)
                }
                if not changes:
                    return existing.model_copy()
                participant = existing.model_copy(update={**changes, "updated_at": utc_now()})
            else:
                participant = Participant(
                    name=record.name,
                    phone_number=record.phone_number,
                    email=record.email,
                    reference_id=record.reference_id,
                    amount=record.amount,
                    verified=record.verified,
                )
                self._ids_by_email[participant.email] = participant.id

            self._participants[participant.id] = participant
            return participant.model_copy()

    async def create(self, record: ParticipantCreate) -> Participant:
        with self._lock:
            if record.email in self._ids_by_email:
                raise DuplicateParticipantError(record.email)

            participant = Participant(
                name=record.name,
                phone_number=record.phone_number,
                email=record.email,
                reference_id=record.reference_id,
                amount=record.amount,
            )
            self._participants[participant.id] = participant
            self._ids_by_email[participant.email] = participant.id
            return participant.model_copy()

    async def get(self, participant_id: str) -> Optional[Participant]:
        with self._lock:
            participant = self._participants.get(participant_id)
            return participant.model_copy() if participant else None

    async def set_verified(self, participant_id: str, value: bool) -> Participant:
        with self._lock:
            participant = self._require(participant_id).model_copy(update={
                "verified": value,
                "updated_at": utc_now(),
            })
            self._participants[participant_id] = participant
            return participant.model_copy()

    async def mark_attended(self, participant_id: str) -> Participant:
        with self._lock:
            participant = self._require(participant_id)
            if not participant.attended:
                now = utc_now()
                participant = participant.model_copy(update={
                    "attended": True,
                    "attended_at": now,
                    "updated_at": now,
                })
                self._participants[participant_id] = participant
            return participant.model_copy()

    async def list_all(
        self,
        filters: Optional[ParticipantFilter] = None,
        sort: Optional[ParticipantSort] = None,
    ) -> List[Participant]:
        filters = filters or ParticipantFilter()
        sort = sort or ParticipantSort()

        with self._lock:
            items = [p for p in self._participants.values() if _matches(p, filters)]

        def sort_key(participant: Participant):
            value = getattr(participant, sort.field)
            # NULLs last ascending, first descending (PostgreSQL ordering)
            return (value is None, value if value is not None else "")

        items.sort(key=sort_key, reverse=sort.direction == SortDirection.DESC)
        return [p.model_copy() for p in items]

    async def delete(self, participant_id: str) -> bool:
        with self._lock:
            participant = self._participants.pop(participant_id, None)
            if participant is None:
                return False
            self._ids_by_email.pop(participant.email, None)
            return True

    async def delete_all(self) -> int:
        with self._lock:
            count = len(self._participants)
            self._participants.clear()
            self._ids_by_email.clear()
        logger.info(f"Deleted all {count} participants")
        return count
