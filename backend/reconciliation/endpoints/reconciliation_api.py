"""
Payment Verification API Endpoints

REST API for the reconciliation engine:
- POST /api/verification/verify-payments - Reconcile a statement PDF against a roster CSV
- GET /api/verification/results - Current verification state with counts
- PUT /api/verification/verify/{participant_id} - Manually verify a participant
- PUT /api/verification/unverify/{participant_id} - Undo a verification
- DELETE /api/verification/delete - Clear all participants
- GET /api/verification/status - Module status
"""

import logging
from typing import Optional
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from config import get_settings
from reconciliation.errors import InputReadError, ValidationError
from reconciliation.extraction.statement_extractor import statement_extractor
from reconciliation.services.reconciliation_service import ReconciliationService
from registry.dependencies import get_participant_repository, list_query
from registry.errors import NotFoundError
from registry.repository import ParticipantRepository
from sentry_integration import capture_exception
from utils.validation_errors import (
    raise_invalid_parameter,
    raise_missing_parameter,
    raise_not_found,
    raise_read_error,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/verification", tags=["Verification"])

# Upload field that carries each input source
UPLOAD_FIELDS = {
    "statement": "statement_file",
    "roster": "participants_file",
}


# ==================== Dependencies ====================

def get_reconciliation_service(
    repository: ParticipantRepository = Depends(get_participant_repository)
) -> ReconciliationService:
    return ReconciliationService(repository)


async def read_upload(upload: Optional[UploadFile], parameter: str) -> Optional[bytes]:
    """Read an upload, rejecting anything over UPLOAD_MAX_SIZE_MB with 413."""
    if upload is None:
        return None

    max_size = get_settings().upload_max_bytes
    content = await upload.read(max_size + 1)
    if len(content) > max_size:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail={
                "error": "file_too_large",
                "parameter": parameter,
                "message": f"File too large. Maximum size is {max_size // (1024 * 1024)}MB"
            }
        )
    return content


# ==================== Endpoints ====================

@router.get("/status", summary="Module status")
async def get_module_status():
    """
    Get verification module status.

    Returns configuration and availability information.
    """
    settings = get_settings()
    return {
        "module": "verification",
        "status": "operational",
        "version": settings.API_VERSION,
        "features": {
            "pdf_statements": True,
            "fallback_extraction": True,
            "scientific_utr_repair": True,
            "manual_override": True
        },
        "extraction_strategies": [s.name for s in statement_extractor.strategies],
        "registry_backend": settings.REGISTRY_BACKEND,
        "max_upload_mb": settings.UPLOAD_MAX_SIZE_MB,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.post("/verify-payments", summary="Verify payments")
async def verify_payments(
    statement_file: Optional[UploadFile] = File(default=None, description="Payment statement PDF"),
    participants_file: Optional[UploadFile] = File(default=None, description="Participants CSV"),
    expected_amount: Optional[str] = Form(default=None, description="Expected payment amount"),
    service: ReconciliationService = Depends(get_reconciliation_service)
):
    """
    Reconcile a payment-app statement against the participant roster.

    This will:
    1. Extract transactions from the statement PDF
    2. Parse the participants CSV (repairing spreadsheet-mangled UTRs)
    3. Verify each participant with a CREDIT of the expected amount under their UTR
    4. Upsert every participant by email with the outcome

    Re-running with the same inputs leaves the registry unchanged.
    """
    statement_pdf = await read_upload(statement_file, "statement_file")
    roster_csv = await read_upload(participants_file, "participants_file")

    try:
        result = await service.verify_payments(statement_pdf, roster_csv, expected_amount)
        return result.to_dict()

    except ValidationError as e:
        if e.parameter in UPLOAD_FIELDS.values():
            raise_missing_parameter(e.parameter, str(e))
        raise_invalid_parameter(e.parameter or "expected_amount", str(e), expected_amount)
    except InputReadError as e:
        logger.warning(f"Rejected unreadable upload: {e}")
        raise_read_error(UPLOAD_FIELDS.get(e.source), str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Verification processing failed: {e}")
        capture_exception(e, endpoint="verify-payments")
        raise HTTPException(status_code=500, detail="Verification processing failed")


@router.get("/results", summary="Get verification results")
async def get_results(
    query=Depends(list_query),
    service: ReconciliationService = Depends(get_reconciliation_service)
):
    """
    Get all participants with verified/pending counts.

    Supports search, verified/attended filters and sorting.
    """
    filters, sort = query
    try:
        return await service.get_results(filters, sort)
    except Exception as e:
        logger.exception(f"Failed to get results: {e}")
        capture_exception(e, endpoint="results")
        raise HTTPException(status_code=500, detail="Failed to get results")


async def _set_verified(service: ReconciliationService, participant_id: str, value: bool):
    try:
        participant = await service.set_verified(participant_id, value)
    except NotFoundError:
        raise_not_found("participant", participant_id)
    except Exception as e:
        logger.exception(f"Failed to update participant {participant_id}: {e}")
        capture_exception(e, participant_id=participant_id)
        raise HTTPException(status_code=500, detail="Failed to update participant")

    return {"success": True, "verified": participant.verified, "participant": participant.to_dict()}


@router.put("/verify/{participant_id}", summary="Manually verify a participant")
async def verify_participant(
    participant_id: str,
    service: ReconciliationService = Depends(get_reconciliation_service)
):
    """
    Mark a participant verified regardless of statement evidence.

    Attendance is left untouched.
    """
    return await _set_verified(service, participant_id, True)


@router.put("/unverify/{participant_id}", summary="Undo a verification")
async def unverify_participant(
    participant_id: str,
    service: ReconciliationService = Depends(get_reconciliation_service)
):
    """
    Mark a participant unverified.

    Attendance is left untouched.
    """
    return await _set_verified(service, participant_id, False)


@router.delete("/delete", summary="Delete all participants")
async def delete_all_participants(
    service: ReconciliationService = Depends(get_reconciliation_service)
):
    """
    Clear the registry to start a new event cycle.
    """
    try:
        deleted = await service.reset()
    except Exception as e:
        logger.exception(f"Failed to delete participants: {e}")
        capture_exception(e, endpoint="delete")
        raise HTTPException(status_code=500, detail="Failed to delete participants")

    return {"success": True, "deleted_count": deleted}
