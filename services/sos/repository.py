"""
SQLAlchemy-backed AlertStore.

Status writes lock the row (SELECT ... FOR UPDATE) and compare the stored
status before overwriting, so only the first terminal transition wins across
processes.
"""

from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from common.errors import InvalidTransition, NotFound
from common.ports import AlertStore
from common.schemas import Alert, ResponderEntry, SafetyAssessment
from common.types import AlertStatus
from libs.geo import Coordinate
from models.alert import AlertRecord


def alert_to_row(alert: Alert, row: Optional[AlertRecord] = None) -> AlertRecord:
    row = row or AlertRecord(alert_id=alert.id)
    row.user_id = alert.user_id
    row.alert_type = alert.type.value
    row.status = alert.status.value
    row.severity = alert.severity.value
    row.lat = alert.coordinate.latitude
    row.lon = alert.coordinate.longitude
    row.accuracy = alert.accuracy
    row.message = alert.message
    row.timestamp = alert.timestamp
    row.media = list(alert.media)
    row.responders = [r.model_dump(mode="json") for r in alert.responders]
    row.assessment = alert.assessment.model_dump(mode="json") if alert.assessment else None
    row.resolved_at = alert.resolved_at
    row.resolved_by = alert.resolved_by
    row.resolution_notes = alert.resolution_notes
    row.updated_at = alert.updated_at
    return row


def row_to_alert(row: AlertRecord) -> Alert:
    return Alert(
        id=row.alert_id,
        user_id=row.user_id,
        type=row.alert_type,
        status=row.status,
        severity=row.severity,
        coordinate=Coordinate(latitude=row.lat, longitude=row.lon),
        accuracy=row.accuracy,
        message=row.message,
        timestamp=row.timestamp,
        media=list(row.media or []),
        responders=[ResponderEntry.model_validate(r) for r in row.responders or []],
        assessment=SafetyAssessment.model_validate(row.assessment) if row.assessment else None,
        resolved_at=row.resolved_at,
        resolved_by=row.resolved_by,
        resolution_notes=row.resolution_notes,
        updated_at=row.updated_at,
    )


class SqlAlertStore(AlertStore):
    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory

    async def save(self, alert: Alert) -> Alert:
        async with self.session_factory() as db:
            db.add(alert_to_row(alert))
            await db.commit()
        return alert

    async def get(self, alert_id: str) -> Optional[Alert]:
        async with self.session_factory() as db:
            row = await db.get(AlertRecord, alert_id)
            return row_to_alert(row) if row else None

    async def update(
        self, alert: Alert, expected_status: Optional[AlertStatus] = None
    ) -> Alert:
        async with self.session_factory() as db:
            result = await db.execute(
                select(AlertRecord).where(AlertRecord.alert_id == alert.id).with_for_update()
            )
            row = result.scalar_one_or_none()
            if row is None:
                raise NotFound(f"Alert '{alert.id}' not found")
            expected = AlertStatus(expected_status).value if expected_status else None
            if expected is not None and row.status != expected:
                await db.rollback()
                raise InvalidTransition(
                    f"Alert '{alert.id}' is {row.status}, expected {expected}"
                )
            alert_to_row(alert, row)
            await db.commit()
        return alert

    async def list_for_user(
        self,
        user_id: str,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Alert]:
        stmt = select(AlertRecord).where(AlertRecord.user_id == user_id)
        if since is not None:
            stmt = stmt.where(AlertRecord.timestamp >= since)
        stmt = stmt.order_by(AlertRecord.timestamp.desc()).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self.session_factory() as db:
            rows = (await db.scalars(stmt)).all()
        return [row_to_alert(r) for r in rows]
