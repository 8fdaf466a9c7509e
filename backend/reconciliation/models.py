"""
Reconciliation Domain Models

Transient records produced during a single reconciliation run:
- Transaction: one credit/debit line extracted from a payment statement
- RosterEntry: one registrant parsed from the uploaded roster
- MatchResult: outcome of matching a roster entry against the statement

None of these are persisted; the registry stores Participant records instead.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional


# Placeholders rendered for roster cells that were blank or missing
NO_NAME = "(No Name)"
NO_EMAIL = "(No Email)"
NO_PHONE = "(No Phone)"
NO_REFERENCE = "(No UTR)"


class TransactionDirection(str, Enum):
    """Direction of funds for a statement transaction."""
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"


class MatchStatus(str, Enum):
    """
    Outcome of matching a roster entry.
    """
    VERIFIED = "VERIFIED"               # Reference found and amount matches
    AMOUNT_MISMATCH = "AMOUNT_MISMATCH" # Reference found, amount differs
    NO_MATCH = "NO_MATCH"               # No credit with this reference


@dataclass(frozen=True)
class Transaction:
    """
    A transaction extracted from statement text.
    """
    date: str
    reference_id: str
    amount: Decimal
    direction: TransactionDirection
    strategy: str = "primary"

    @property
    def is_credit(self) -> bool:
        return self.direction == TransactionDirection.CREDIT


@dataclass
class RosterEntry:
    """
    A registrant parsed from the roster file.

    Missing cells are kept as None; placeholders are only applied when the
    entry is rendered (display_* properties and to_dict).
    """
    sequence_id: int
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    reference_id: Optional[str] = None
    amount: Decimal = field(default_factory=lambda: Decimal("0"))
    verified: bool = False

    @property
    def display_name(self) -> str:
        return self.name or NO_NAME

    @property
    def display_email(self) -> str:
        return self.email or NO_EMAIL

    @property
    def display_phone(self) -> str:
        return self.phone or NO_PHONE

    @property
    def display_reference_id(self) -> str:
        return self.reference_id or NO_REFERENCE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sequence_id": self.sequence_id,
            "name": self.display_name,
            "email": self.display_email,
            "phone": self.display_phone,
            "reference_id": self.display_reference_id,
            "amount": float(self.amount),
            "verified": self.verified,
        }


@dataclass
class MatchResult:
    """
    Result of matching one roster entry against the credit transactions.
    """
    entry: RosterEntry
    status: MatchStatus
    transaction: Optional[Transaction] = None

    @property
    def verified(self) -> bool:
        return self.status == MatchStatus.VERIFIED
