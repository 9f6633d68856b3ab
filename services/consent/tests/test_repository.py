# pytest services/consent/tests/test_repository.py -q

from datetime import datetime, timezone

import pytest

from common.schemas import ConsentRecord
from common.types import ConsentType
from models.consent import ConsentRow
from services.consent.repository import SqlConsentStore, row_to_record

pytestmark = pytest.mark.unit

NOW = datetime(2026, 3, 14, 9, 0, tzinfo=timezone.utc)


class FakeScalars:
    def __init__(self, rows):
        self.rows = rows

    def all(self):
        return list(self.rows)


class FakeDB:
    def __init__(self, rows=None):
        self.rows = list(rows or [])
        self.added = []
        self.statements = []
        self.committed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    def add(self, obj):
        self.added.append(obj)

    async def commit(self):
        self.committed = True

    async def scalars(self, stmt):
        self.statements.append(stmt)
        return FakeScalars(self.rows)

    async def scalar(self, stmt):
        self.statements.append(stmt)
        return self.rows[0] if self.rows else None


def _row(consent_id="consent_1", granted=True):
    return ConsentRow(
        consent_id=consent_id,
        user_id="tourist-1",
        consent_type="location_tracking",
        granted=granted,
        purpose="tracking",
        version="1.0",
        timestamp=NOW,
    )


def test_row_to_record():
    record = row_to_record(_row())
    assert record.type == ConsentType.LOCATION_TRACKING
    assert record.granted is True


@pytest.mark.asyncio
async def test_append_inserts_row():
    db = FakeDB()
    record = ConsentRecord(
        id="consent_9",
        user_id="tourist-1",
        type=ConsentType.DATA_SHARING,
        granted=False,
        purpose="share",
        version="3",
        timestamp=NOW,
    )
    await SqlConsentStore(lambda: db).append(record)

    row = db.added[0]
    assert row.consent_id == "consent_9"
    assert row.consent_type == "data_sharing"
    assert row.granted is False
    assert db.committed is True


@pytest.mark.asyncio
async def test_history_newest_first():
    db = FakeDB([_row("consent_2", granted=False), _row("consent_1")])
    records = await SqlConsentStore(lambda: db).history("tourist-1", limit=10)

    assert [r.id for r in records] == ["consent_2", "consent_1"]
    assert "ORDER BY consent_records.timestamp DESC" in str(db.statements[0])


@pytest.mark.asyncio
async def test_latest():
    store = SqlConsentStore(lambda: FakeDB([_row("consent_2", granted=False)]))
    latest = await store.latest("tourist-1", ConsentType.LOCATION_TRACKING)
    assert latest.id == "consent_2"

    empty = SqlConsentStore(lambda: FakeDB())
    assert await empty.latest("tourist-1", ConsentType.MARKETING) is None
