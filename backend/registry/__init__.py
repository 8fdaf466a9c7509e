"""
Participant Registry Module

Durable per-participant verification state keyed by email:
- PostgreSQL and in-memory repositories behind one async interface
- Manual verify/undo, attendance and listing with search/filter/sort
"""

from registry.errors import RegistryError, NotFoundError, DuplicateParticipantError, InvalidQueryError
from registry.models import (
    Participant,
    ParticipantCreate,
    ParticipantUpsert,
    ParticipantFilter,
    ParticipantSort,
    SortDirection,
)
from registry.repository import ParticipantRepository
from registry.memory_storage import InMemoryParticipantRepository
from registry.db_storage import SqlParticipantRepository
from registry.endpoints.participants_api import router as participants_router

__all__ = [
    'RegistryError',
    'NotFoundError',
    'DuplicateParticipantError',
    'InvalidQueryError',
    'Participant',
    'ParticipantCreate',
    'ParticipantUpsert',
    'ParticipantFilter',
    'ParticipantSort',
    'SortDirection',
    'ParticipantRepository',
    'InMemoryParticipantRepository',
    'SqlParticipantRepository',
    'participants_router',
]
