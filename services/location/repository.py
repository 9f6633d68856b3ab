"""SQLAlchemy-backed LocationStore with a retention window."""

from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from common.constants import LOCATION_RETENTION_DAYS
from common.ports import LocationStore
from common.schemas import LocationSample, utcnow
from libs.geo import Coordinate
from models.location import LocationRecord


def row_to_sample(row: LocationRecord) -> LocationSample:
    return LocationSample(
        user_id=row.user_id,
        coordinate=Coordinate(latitude=row.lat, longitude=row.lon),
        timestamp=row.timestamp,
        accuracy=row.accuracy,
        speed=row.speed,
        source=row.source,
    )


class SqlLocationStore(LocationStore):
    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        retention: timedelta = timedelta(days=LOCATION_RETENTION_DAYS),
    ):
        self.session_factory = session_factory
        self.retention = retention

    async def add(self, sample: LocationSample) -> LocationSample:
        row = LocationRecord(
            user_id=sample.user_id,
            lat=sample.coordinate.latitude,
            lon=sample.coordinate.longitude,
            accuracy=sample.accuracy,
            speed=sample.speed,
            source=sample.source.value,
            timestamp=sample.timestamp,
            expires_at=sample.timestamp + self.retention,
        )
        async with self.session_factory() as db:
            db.add(row)
            await db.execute(delete(LocationRecord).where(LocationRecord.expires_at < utcnow()))
            await db.commit()
        return sample

    async def recent_samples(self, user_id: str, since: datetime) -> List[LocationSample]:
        stmt = (
            select(LocationRecord)
            .where(LocationRecord.user_id == user_id, LocationRecord.timestamp >= since)
            .order_by(LocationRecord.timestamp.asc())
        )
        async with self.session_factory() as db:
            rows = (await db.scalars(stmt)).all()
        return [row_to_sample(r) for r in rows]

    async def history(
        self,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 100,
    ) -> List[LocationSample]:
        stmt = select(LocationRecord).where(LocationRecord.user_id == user_id)
        if start is not None:
            stmt = stmt.where(LocationRecord.timestamp >= start)
        if end is not None:
            stmt = stmt.where(LocationRecord.timestamp <= end)
        stmt = stmt.order_by(LocationRecord.timestamp.desc()).limit(limit)
        async with self.session_factory() as db:
            rows = (await db.scalars(stmt)).all()
        return [row_to_sample(r) for r in rows]
