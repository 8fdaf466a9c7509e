"""
Participant Registry - PostgreSQL Storage

SQLAlchemy-backed registry. Upserts use INSERT ... ON CONFLICT (email) so that
concurrent runs for the same email never interleave field writes; manual
overrides are single UPDATE ... RETURNING statements. Every operation commits
on its own.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import and_, case, delete, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from database.participant_models import ParticipantDB, generate_uuid, utc_now
from registry.errors import DuplicateParticipantError, NotFoundError
from registry.models import (
    Participant,
    ParticipantCreate,
    ParticipantFilter,
    ParticipantSort,
    ParticipantUpsert,
    SortDirection,
    UPSERT_FIELDS,
)
from registry.repository import ParticipantRepository

logger = logging.getLogger(__name__)

LIKE_ESCAPE = "\\"


def _like_pattern(search: str) -> str:
    """Substring pattern for ILIKE with wildcard characters taken literally."""
    escaped = (
        search.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def _db_to_participant(db_participant: ParticipantDB) -> Participant:
    """Convert database model to domain model"""
    return Participant(
        id=db_participant.id,
        name=db_participant.name,
        phone_number=db_participant.phone_number,
        email=db_participant.email,
        reference_id=db_participant.reference_id,
        amount=Decimal(str(db_participant.amount or 0)),
        verified=bool(db_participant.verified),
        attended=bool(db_participant.attended),
        attended_at=db_participant.attended_at,
        qr_code=db_participant.qr_code,
        created_at=db_participant.created_at,
        updated_at=db_participant.updated_at,
    )


class SqlParticipantRepository(ParticipantRepository):
    """Participant registry over an async SQLAlchemy session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ==================== WRITE ====================

    async def upsert(self, record: ParticipantUpsert) -> Participant:
        now = utc_now()
        stmt = pg_insert(ParticipantDB).values(
            id=generate_uuid(),
            email=record.email,
            name=record.name,
            phone_number=record.phone_number,
            reference_id=record.reference_id,
            amount=record.amount,
            verified=record.verified,
            attended=False,
            attended_at=None,
            qr_code=None,
            created_at=now,
            updated_at=now,
        )
        changed = or_(*(
            getattr(ParticipantDB, field).is_distinct_from(getattr(stmt.excluded, field))
            for field in UPSERT_FIELDS
        ))
        stmt = stmt.on_conflict_do_update(
            index_elements=[ParticipantDB.email],
            set_={
                **{field: getattr(stmt.excluded, field) for field in UPSERT_FIELDS},
                # Unchanged re-runs keep the previous timestamp
                "updated_at": case((changed, now), else_=ParticipantDB.updated_at),
            },
        ).returning(ParticipantDB)

        try:
            result = await self.session.execute(
                stmt, execution_options={"populate_existing": True}
            )
            db_participant = result.scalar_one()
            await self.session.commit()
        except Exception as e:
            logger.error(f"Failed to upsert participant {record.email}: {e}")
            await self.session.rollback()
            raise

        return _db_to_participant(db_participant)

    async def create(self, record: ParticipantCreate) -> Participant:
        existing = await self.session.execute(
            select(ParticipantDB.id).where(ParticipantDB.email == record.email)
        )
        if existing.scalar_one_or_none():
            raise DuplicateParticipantError(record.email)

        db_participant = ParticipantDB(
            id=generate_uuid(),
            name=record.name,
            phone_number=record.phone_number,
            email=record.email,
            reference_id=record.reference_id,
            amount=record.amount,
            verified=False,
            attended=False,
        )
        self.session.add(db_participant)

        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise DuplicateParticipantError(record.email) from e

        await self.session.refresh(db_participant)
        return _db_to_participant(db_participant)

    async def set_verified(self, participant_id: str, value: bool) -> Participant:
        stmt = (
            update(ParticipantDB)
            .where(ParticipantDB.id == participant_id)
            .values(verified=value, updated_at=utc_now())
            .returning(ParticipantDB)
        )
        result = await self.session.execute(
            stmt, execution_options={"populate_existing": True}
        )
        db_participant = result.scalar_one_or_none()

        if not db_participant:
            await self.session.rollback()
            raise NotFoundError(participant_id)

        await self.session.commit()
        return _db_to_participant(db_participant)

    async def mark_attended(self, participant_id: str) -> Participant:
        now = utc_now()
        stmt = (
            update(ParticipantDB)
            .where(ParticipantDB.id == participant_id)
            .values(
                attended=True,
                attended_at=func.coalesce(ParticipantDB.attended_at, now),
                updated_at=now,
            )
            .returning(ParticipantDB)
        )
        result = await self.session.execute(
            stmt, execution_options={"populate_existing": True}
        )
        db_participant = result.scalar_one_or_none()

        if not db_participant:
            await self.session.rollback()
            raise NotFoundError(participant_id)

        await self.session.commit()
        return _db_to_participant(db_participant)

    async def delete(self, participant_id: str) -> bool:
        result = await self.session.execute(
            delete(ParticipantDB).where(ParticipantDB.id == participant_id)
        )
        await self.session.commit()
        return (result.rowcount or 0) > 0

    async def delete_all(self) -> int:
        result = await self.session.execute(delete(ParticipantDB))
        await self.session.commit()
        count = result.rowcount or 0
        logger.info(f"Deleted all {count} participants")
        return count

    # ==================== READ ====================

    async def get(self, participant_id: str) -> Optional[Participant]:
        result = await self.session.execute(
            select(ParticipantDB).where(ParticipantDB.id == participant_id)
        )
        db_participant = result.scalar_one_or_none()
        return _db_to_participant(db_participant) if db_participant else None

    async def list_all(
        self,
        filters: Optional[ParticipantFilter] = None,
        sort: Optional[ParticipantSort] = None,
    ) -> List[Participant]:
        filters = filters or ParticipantFilter()
        sort = sort or ParticipantSort()

        query = select(ParticipantDB)
        conditions = []

        if filters.verified is not None:
            conditions.append(ParticipantDB.verified == filters.verified)

        if filters.attended is not None:
            conditions.append(ParticipantDB.attended == filters.attended)

        # Search (name, email, phone, UTR)
        if filters.search:
            search_term = _like_pattern(filters.search)
            conditions.append(
                or_(
                    ParticipantDB.name.ilike(search_term, escape=LIKE_ESCAPE),
                    ParticipantDB.email.ilike(search_term, escape=LIKE_ESCAPE),
                    ParticipantDB.phone_number.ilike(search_term, escape=LIKE_ESCAPE),
                    ParticipantDB.reference_id.ilike(search_term, escape=LIKE_ESCAPE),
                )
            )

        if conditions:
            query = query.where(and_(*conditions))

        column = getattr(ParticipantDB, sort.field)
        ordering = column.desc() if sort.direction == SortDirection.DESC else column.asc()
        query = query.order_by(ordering, ParticipantDB.id)

        result = await self.session.execute(query)
        return [_db_to_participant(p) for p in result.scalars().all()]
