"""
Participant Registry API Endpoints

- GET /api/participants - List participants (search, filters, sorting)
- GET /api/participants/{participant_id} - Get a single participant
- POST /api/participants - Register a participant directly
- DELETE /api/participants/{participant_id} - Delete a participant
- POST /api/participants/{participant_id}/attend - Record attendance
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from registry.dependencies import get_participant_repository, list_query
from registry.errors import DuplicateParticipantError, NotFoundError
from registry.models import ParticipantCreate
from registry.repository import ParticipantRepository
from sentry_integration import capture_exception
from utils.validation_errors import raise_not_found

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/participants", tags=["Participants"])


@router.get("", summary="List participants")
async def list_participants(
    query=Depends(list_query),
    repository: ParticipantRepository = Depends(get_participant_repository)
):
    filters, sort = query
    try:
        participants = await repository.list_all(filters, sort)
    except Exception as e:
        logger.exception(f"Failed to list participants: {e}")
        capture_exception(e, endpoint="list_participants")
        raise HTTPException(status_code=500, detail="Failed to list participants")

    return {
        "participants": [p.to_dict() for p in participants],
        "count": len(participants)
    }


@router.get("/{participant_id}", summary="Get participant")
async def get_participant(
    participant_id: str,
    repository: ParticipantRepository = Depends(get_participant_repository)
):
    participant = await repository.get(participant_id)
    if not participant:
        raise_not_found("participant", participant_id)
    return participant.to_dict()


@router.post("", status_code=status.HTTP_201_CREATED, summary="Register participant")
async def create_participant(
    request: ParticipantCreate,
    repository: ParticipantRepository = Depends(get_participant_repository)
):
    """
    Register a participant outside of a reconciliation run.

    Email must be unique; a later reconciliation run updates the same record.
    """
    try:
        participant = await repository.create(request)
    except DuplicateParticipantError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"error": "duplicate", "parameter": "email", "message": str(e)}
        )

    logger.info(f"Registered participant {participant.id}")
    return participant.to_dict()


@router.delete("/{participant_id}", summary="Delete participant")
async def delete_participant(
    participant_id: str,
    repository: ParticipantRepository = Depends(get_participant_repository)
):
    if not await repository.delete(participant_id):
        raise_not_found("participant", participant_id)

    logger.info(f"Deleted participant {participant_id}")
    return {"success": True, "deleted": participant_id}


@router.post("/{participant_id}/attend", summary="Record attendance")
async def mark_attended(
    participant_id: str,
    repository: ParticipantRepository = Depends(get_participant_repository)
):
    """
    Mark a participant as attended.

    Idempotent: the first check-in time is kept. Verification state is untouched.
    """
    try:
        participant = await repository.mark_attended(participant_id)
    except NotFoundError:
        raise_not_found("participant", participant_id)

    return {"success": True, "participant": participant.to_dict()}
