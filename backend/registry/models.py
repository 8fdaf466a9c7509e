"""
Participant Registry - Domain Models

- Participant: durable verification state of one registrant (keyed by email)
- ParticipantUpsert: fields written by a reconciliation run
- ParticipantCreate: direct registration
- ParticipantFilter / ParticipantSort: list query options

Verification transitions (Unverified <-> Verified) are always reversible.
Attendance is orthogonal: it only ever moves from not attended to attended.
"""

import re
import uuid
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from registry.errors import InvalidQueryError


# Separators are mandatory between word runs so failed matches stay linear
EMAIL_PATTERN = re.compile(r"^\w+(?:[.-]\w+)*@\w+(?:[.-]\w+)*\.\w{2,3}$")

AMOUNT_QUANTUM = Decimal("0.01")


def is_valid_email(value: Optional[str]) -> bool:
    return bool(value) and EMAIL_PATTERN.match(value.strip()) is not None


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _validate_email(value: str) -> str:
    value = value.strip()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Please provide a valid email")
    return value


def _quantize_amount(value: Decimal) -> Decimal:
    return value.quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_UP)


# ==================== WRITE MODELS ====================

# Fields a reconciliation run may overwrite on an existing participant
UPSERT_FIELDS = ("name", "phone_number", "reference_id", "verified", "amount")


class ParticipantUpsert(BaseModel):
    """Fields overwritten on every reconciliation run for the same email."""
    email: str
    name: str
    phone_number: str
    reference_id: Optional[str] = None
    amount: Decimal = Field(default=Decimal("0"), ge=0)
    verified: bool = False

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return _validate_email(value)

    @field_validator("amount")
    @classmethod
    def round_amount(cls, value: Decimal) -> Decimal:
        return _quantize_amount(value)


class ParticipantCreate(BaseModel):
    """Direct registration of a participant."""
    name: str = Field(..., min_length=1, description="Participant name")
    phone_number: str = Field(..., min_length=1, description="Phone number")
    email: str = Field(..., description="Unique email address")
    reference_id: Optional[str] = Field(default=None, description="Payment UTR, if known")
    amount: Decimal = Field(default=Decimal("0"), ge=0)

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return _validate_email(value)

    @field_validator("amount")
    @classmethod
    def round_amount(cls, value: Decimal) -> Decimal:
        return _quantize_amount(value)

    @field_validator("name", "phone_number")
    @classmethod
    def strip_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


# ==================== ENTITY ====================

class Participant(BaseModel):
    """Persisted participant record."""
    id: str = Field(default_factory=generate_uuid)
    name: str
    phone_number: str
    email: str
    reference_id: Optional[str] = None
    amount: Decimal = Decimal("0")
    verified: bool = False
    attended: bool = False
    attended_at: Optional[datetime] = None
    qr_code: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone_number,
            "reference_id": self.reference_id,
            "amount": float(self.amount),
            "verified": self.verified,
            "attended": self.attended,
            "attended_at": self.attended_at.isoformat() if self.attended_at else None,
            "qr_code": self.qr_code,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


# ==================== QUERY MODELS ====================

class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


SORTABLE_FIELDS = {
    "created_at", "updated_at", "name", "email", "phone_number",
    "reference_id", "amount", "verified", "attended", "attended_at",
}

# Accepted spellings from dashboard clients
SORT_FIELD_ALIASES = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "phone": "phone_number",
    "phoneNumber": "phone_number",
    "referenceId": "reference_id",
    "utrId": "reference_id",
    "attendedAt": "attended_at",
}


class ParticipantFilter(BaseModel):
    """Filter criteria for listing participants"""
    search: Optional[str] = None
    verified: Optional[bool] = None
    attended: Optional[bool] = None


class ParticipantSort(BaseModel):
    """Sort order for listing participants; newest first by default."""
    field: str = "created_at"
    direction: SortDirection = SortDirection.DESC

    @classmethod
    def from_query(cls, sort_by: Optional[str], sort_order: Optional[str]) -> "ParticipantSort":
        order = sort_order.lower() if sort_order else None
        if order is not None and order not in ("asc", "desc"):
            raise InvalidQueryError("sort_order", "sort_order must be 'asc' or 'desc'")

        if not sort_by:
            # An order without a field applies to creation time
            return cls(direction=SortDirection(order or "desc"))

        field = SORT_FIELD_ALIASES.get(sort_by, sort_by)
        if field not in SORTABLE_FIELDS:
            raise InvalidQueryError("sort_by", f"Cannot sort participants by '{sort_by}'")

        # Explicit sort fields default to ascending
        return cls(field=field, direction=SortDirection(order or "asc"))
