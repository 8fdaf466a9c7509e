"""
Event Verification - Participant Database Model

Tables:
- participants: one row per registrant email, holding payment verification
  and attendance state
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Numeric, String, Text

from database.connection import Base


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ParticipantDB(Base):
    """
    Participant verification record.
    
    Contains:
    - Identity (email, unique) and contact details
    - Payment reference and amount from the latest reconciliation
    - Verification flag (reconciliation or manual override)
    - Attendance and QR fields owned by check-in tooling
    """
    __tablename__ = "participants"
    
    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(320), nullable=False, unique=True, index=True)
    name = Column(Text, nullable=False)
    phone_number = Column(Text, nullable=False)
    
    # Payment
    reference_id = Column(Text, nullable=True, index=True)
    amount = Column(Numeric(12, 2), nullable=False, default=0)
    verified = Column(Boolean, nullable=False, default=False, index=True)
    
    # Check-in
    attended = Column(Boolean, nullable=False, default=False, index=True)
    attended_at = Column(DateTime(timezone=True), nullable=True)
    qr_code = Column(Text, nullable=True)
    
    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)
