"""
Participant Registry - FastAPI Dependencies

Selects the registry backend from settings.REGISTRY_BACKEND:
- postgres: SqlParticipantRepository over a request-scoped session
- memory: one process-wide InMemoryParticipantRepository

Also parses the list query parameters shared by the list endpoints.
"""

from typing import AsyncIterator, Optional, Tuple

from fastapi import Query

from config import get_settings
from database.connection import get_session_factory
from registry.db_storage import SqlParticipantRepository
from registry.memory_storage import InMemoryParticipantRepository
from registry.errors import InvalidQueryError
from registry.models import ParticipantFilter, ParticipantSort
from registry.repository import ParticipantRepository
from utils.validation_errors import raise_invalid_parameter

_memory_repository = InMemoryParticipantRepository()


async def get_participant_repository() -> AsyncIterator[ParticipantRepository]:
    """Dependency to get the participant registry"""
    if not get_settings().uses_database:
        yield _memory_repository
        return

    async with get_session_factory()() as session:
        try:
            yield SqlParticipantRepository(session)
        finally:
            await session.close()


def list_query(
    search: Optional[str] = Query(default=None, description="Search name, email, phone or UTR"),
    sort_by: Optional[str] = Query(default=None, description="Sort field"),
    sort_order: Optional[str] = Query(default=None, description="asc or desc"),
    verified: Optional[bool] = Query(default=None, description="Filter by verification state"),
    attended: Optional[bool] = Query(default=None, description="Filter by attendance"),
) -> Tuple[ParticipantFilter, ParticipantSort]:
    """Shared list parameters for results and participant listings."""
    try:
        sort = ParticipantSort.from_query(sort_by, sort_order)
    except InvalidQueryError as e:
        raise_invalid_parameter(e.parameter, str(e), sort_by if e.parameter == "sort_by" else sort_order)

    filters = ParticipantFilter(
        search=search.strip() if search and search.strip() else None,
        verified=verified,
        attended=attended,
    )
    return filters, sort
