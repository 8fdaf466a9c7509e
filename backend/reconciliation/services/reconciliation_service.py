"""
Reconciliation Service

Core business logic for event payment verification:
- Validating a verification request
- Extracting transactions from the payment statement
- Parsing the participant roster
- Matching participants to CREDIT transactions by UTR and amount
- Upserting outcomes into the participant registry
- Manual verify/undo and registry reset
- Audit logging

A run is all-or-nothing up to persistence: read/parse failures abort before
the registry is touched. Upserts within a run are independent of each other.
"""

import math
import uuid
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Union

from reconciliation.errors import ValidationError
from reconciliation.extraction.pdf_text import read_statement_text
from reconciliation.extraction.statement_extractor import StatementExtractor, statement_extractor
from reconciliation.matching_rules.utr_rules import UTRMatchingRules, utr_rules
from reconciliation.models import MatchResult
from reconciliation.roster_parser import RosterParser, roster_parser as default_roster_parser
from registry.models import (
    Participant,
    ParticipantFilter,
    ParticipantSort,
    ParticipantUpsert,
    is_valid_email,
)
from registry.repository import ParticipantRepository

logger = logging.getLogger(__name__)

NO_TRANSACTIONS_MESSAGE = "No transactions found in statement"


@dataclass
class ReconciliationRunResult:
    """Result of a reconciliation run."""
    run_id: str
    verified_count: int
    total_count: int
    pending: int
    transaction_count: int
    credit_count: int
    extraction_strategy: Optional[str]
    message: str
    participants: List[Dict[str, Any]]
    skipped: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "run_id": self.run_id,
            "verified_count": self.verified_count,
            "total_count": self.total_count,
            "pending": self.pending,
            "transaction_count": self.transaction_count,
            "credit_count": self.credit_count,
            "extraction_strategy": self.extraction_strategy,
            "message": self.message,
            "participants": self.participants,
            "skipped": self.skipped,
        }


class ReconciliationAuditEvent:
    """Audit event types for reconciliation operations."""
    RUN_STARTED = "reconciliation.run_started"
    RUN_COMPLETED = "reconciliation.run_completed"
    PARTICIPANT_VERIFIED = "reconciliation.participant_verified"
    VERIFICATION_UNDONE = "reconciliation.verification_undone"
    REGISTRY_RESET = "reconciliation.registry_reset"


def log_reconciliation_event(
    event_type: str,
    details: Dict[str, Any],
    participant_id: Optional[str] = None,
    actor: str = "system"
):
    """Log reconciliation event for audit trail."""
    log_entry = {
        "event": event_type,
        "participant_id": participant_id,
        "details": details,
        "actor": actor,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
    logger.info(f"Reconciliation event: {event_type}", extra=log_entry)


def parse_expected_amount(value: Union[Decimal, int, float, str, None]) -> Decimal:
    """
    Validate the expected payment amount.

    Raises:
        ValidationError: If the amount is missing, non-numeric or not positive
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError("Valid expected payment amount is required", "expected_amount")

    if isinstance(value, float) and not math.isfinite(value):
        raise ValidationError("Valid expected payment amount is required", "expected_amount")

    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError("Valid expected payment amount is required", "expected_amount")

    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Expected payment amount must be a positive number", "expected_amount")

    return amount


class ReconciliationService:
    """
    Service for verifying event payments against a UPI statement.
    """

    def __init__(
        self,
        repository: ParticipantRepository,
        extractor: Optional[StatementExtractor] = None,
        roster_parser: Optional[RosterParser] = None,
        rules: Optional[UTRMatchingRules] = None
    ):
        self.repository = repository
        self.extractor = extractor or statement_extractor
        self.roster_parser = roster_parser or default_roster_parser
        self.rules = rules or utr_rules

    # ==================== RECONCILIATION ====================

    async def verify_payments(
        self,
        statement_pdf: Optional[bytes],
        roster_csv: Optional[bytes],
        expected_amount: Union[Decimal, int, float, str, None]
    ) -> ReconciliationRunResult:
        """
        Verify payments from an uploaded statement PDF and roster CSV.

        Args:
            statement_pdf: Raw bytes of the payment-app statement
            roster_csv: Raw bytes of the participants list
            expected_amount: Fee every participant should have paid

        Returns:
            ReconciliationRunResult with counts and annotated participants

        Raises:
            ValidationError: Missing file or invalid expected amount
            InputReadError: Statement or roster could not be read
        """
        if not statement_pdf:
            raise ValidationError(
                "Both payment statement and participants list are required", "statement_file"
            )
        if not roster_csv:
            raise ValidationError(
                "Both payment statement and participants list are required", "participants_file"
            )
        amount = parse_expected_amount(expected_amount)

        statement_text = read_statement_text(statement_pdf)
        return await self.reconcile_statement_text(statement_text, roster_csv, amount)

    async def reconcile_statement_text(
        self,
        statement_text: str,
        roster_csv: bytes,
        expected_amount: Union[Decimal, int, float, str, None]
    ) -> ReconciliationRunResult:
        """
        Reconcile a roster against statement text that is already extracted.

        Both inputs are fully read and parsed before the first registry write.
        """
        amount = parse_expected_amount(expected_amount)
        run_id = str(uuid.uuid4())

        log_reconciliation_event(
            ReconciliationAuditEvent.RUN_STARTED,
            {"run_id": run_id, "expected_amount": str(amount)}
        )

        transactions, strategy = self.extractor.extract_with_strategy(statement_text)
        roster = self.roster_parser.parse(roster_csv)

        results = self.rules.reconcile(transactions, roster, amount)
        credit_count = len(self.rules.credit_transactions(transactions))

        participants, skipped = await self._store_results(results)

        verified_count = sum(1 for r in results if r.verified)
        total_count = len(results)

        if not transactions:
            message = NO_TRANSACTIONS_MESSAGE
            logger.warning(f"Run {run_id}: {message}")
        else:
            message = f"Verification complete: {verified_count} of {total_count} verified"

        log_reconciliation_event(
            ReconciliationAuditEvent.RUN_COMPLETED,
            {
                "run_id": run_id,
                "transactions": len(transactions),
                "credits": credit_count,
                "strategy": strategy,
                "total": total_count,
                "verified": verified_count,
                "skipped": len(skipped),
            }
        )

        return ReconciliationRunResult(
            run_id=run_id,
            verified_count=verified_count,
            total_count=total_count,
            pending=total_count - verified_count,
            transaction_count=len(transactions),
            credit_count=credit_count,
            extraction_strategy=strategy,
            message=message,
            participants=participants,
            skipped=skipped,
        )

    async def _store_results(self, results: List[MatchResult]):
        """Upsert every matched entry by email; entries without a usable email are reported, not stored."""
        participants = []
        skipped = []

        for result in results:
            entry = result.entry
            participant_id = None

            if is_valid_email(entry.email):
                stored = await self.repository.upsert(ParticipantUpsert(
                    email=entry.email,
                    name=entry.display_name,
                    phone_number=entry.display_phone,
                    reference_id=entry.reference_id,
                    amount=entry.amount,
                    verified=entry.verified,
                ))
                participant_id = stored.id
            else:
                logger.warning(
                    f"Not storing roster row {entry.sequence_id}: missing or invalid email {entry.email!r}"
                )
                skipped.append({
                    "sequence_id": entry.sequence_id,
                    "email": entry.display_email,
                    "reason": "missing or invalid email",
                })

            participants.append({
                "id": participant_id,
                **entry.to_dict(),
                "match_status": result.status.value,
            })

        return participants, skipped

    # ==================== REGISTRY OPERATIONS ====================

    async def set_verified(
        self,
        participant_id: str,
        value: bool,
        actor: str = "system"
    ) -> Participant:
        """
        Manually verify a participant or undo a verification.

        Raises:
            NotFoundError: If the participant does not exist
        """
        participant = await self.repository.set_verified(participant_id, value)

        log_reconciliation_event(
            ReconciliationAuditEvent.PARTICIPANT_VERIFIED if value
            else ReconciliationAuditEvent.VERIFICATION_UNDONE,
            {"name": participant.name, "email": participant.email},
            participant_id=participant_id,
            actor=actor
        )
        return participant

    async def get_results(
        self,
        filters: Optional[ParticipantFilter] = None,
        sort: Optional[ParticipantSort] = None
    ) -> Dict[str, Any]:
        """Current verification state with summary counts."""
        participants = await self.repository.list_all(filters, sort)
        verified_count = sum(1 for p in participants if p.verified)

        return {
            "success": True,
            "verified_count": verified_count,
            "total_count": len(participants),
            "pending": len(participants) - verified_count,
            "participants": [p.to_dict() for p in participants],
        }

    async def reset(self, actor: str = "system") -> int:
        """Delete every participant to start a new event cycle."""
        deleted = await self.repository.delete_all()
        log_reconciliation_event(
            ReconciliationAuditEvent.REGISTRY_RESET,
            {"deleted_count": deleted},
            actor=actor
        )
        return deleted
