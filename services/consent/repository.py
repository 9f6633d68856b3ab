"""SQLAlchemy-backed ConsentStore (insert-only)."""

from typing import Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from common.ports import ConsentStore
from common.schemas import ConsentRecord
from common.types import ConsentType
from models.consent import ConsentRow


def row_to_record(row: ConsentRow) -> ConsentRecord:
    return ConsentRecord(
        id=row.consent_id,
        user_id=row.user_id,
        type=row.consent_type,
        granted=row.granted,
        purpose=row.purpose,
        version=row.version,
        timestamp=row.timestamp,
    )


class SqlConsentStore(ConsentStore):
    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory

    async def append(self, record: ConsentRecord) -> ConsentRecord:
        async with self.session_factory() as db:
            db.add(
                ConsentRow(
                    consent_id=record.id,
                    user_id=record.user_id,
                    consent_type=record.type.value,
                    granted=record.granted,
                    purpose=record.purpose,
                    version=record.version,
                    timestamp=record.timestamp,
                )
            )
            await db.commit()
        return record

    async def history(self, user_id: str, limit: int = 50) -> List[ConsentRecord]:
        stmt = (
            select(ConsentRow)
            .where(ConsentRow.user_id == user_id)
            .order_by(ConsentRow.timestamp.desc())
            .limit(limit)
        )
        async with self.session_factory() as db:
            rows = (await db.scalars(stmt)).all()
        return [row_to_record(r) for r in rows]

    async def latest(self, user_id: str, consent_type: ConsentType) -> Optional[ConsentRecord]:
        stmt = (
            select(ConsentRow)
            .where(
                ConsentRow.user_id == user_id,
                ConsentRow.consent_type == ConsentType(consent_type).value,
            )
            .order_by(ConsentRow.timestamp.desc())
            .limit(1)
        )
        async with self.session_factory() as db:
            row = await db.scalar(stmt)
        return row_to_record(row) if row else None
