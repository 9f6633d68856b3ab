# pytest services/consent/tests/test_consent_service.py -q

from datetime import datetime, timedelta, timezone

import pytest

import libs.audit_logger as audit_logger
from common.errors import NotFound, ValidationError
from common.types import ConsentType
from libs.audit_logger import AuditTrail
from services.consent.service import ConsentService

pytestmark = pytest.mark.unit


class TickingClock:
    """Advances one minute per call so records have distinct timestamps."""

    def __init__(self):
        self.now = datetime(2026, 3, 14, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        self.now += timedelta(minutes=1)
        return self.now


@pytest.fixture()
def service(consent_store, monkeypatch):
    monkeypatch.setattr(audit_logger, "audit_logs", [])
    return ConsentService(consent_store, audit=AuditTrail(), clock=TickingClock())


@pytest.mark.asyncio
async def test_record_and_current(service):
    record = await service.record(
        "tourist-1", ConsentType.LOCATION_TRACKING, True, "live safety tracking", "1.0"
    )

    assert record.id.startswith("consent_")
    assert record.granted is True
    assert await service.current("tourist-1", ConsentType.LOCATION_TRACKING) == record
    assert await service.has_consent("tourist-1", ConsentType.LOCATION_TRACKING) is True


@pytest.mark.asyncio
async def test_record_is_audited(service):
    record = await service.record("tourist-1", "data_sharing", True, "share with police", "2.1")

    entry = audit_logger.audit_logs[-1]
    assert entry["event_type"] == "consent"
    assert entry["event_id"] == record.id
    assert entry["user_id"] == "tourist-1"


@pytest.mark.asyncio
async def test_revoke_appends_and_newest_wins(service):
    await service.record("tourist-1", ConsentType.LOCATION_TRACKING, True, "tracking", "1.0")
    revoked = await service.revoke("tourist-1", ConsentType.LOCATION_TRACKING, "tracking", "1.0")

    assert revoked.granted is False
    assert await service.has_consent("tourist-1", ConsentType.LOCATION_TRACKING) is False
    history = await service.history("tourist-1")
    assert [r.granted for r in history] == [False, True]


@pytest.mark.asyncio
async def test_consent_types_are_independent(service):
    await service.record("tourist-1", ConsentType.MARKETING, False, "newsletter", "1.0")
    await service.record("tourist-1", ConsentType.EMERGENCY_CONTACT, True, "notify family", "1.0")

    assert await service.has_consent("tourist-1", ConsentType.MARKETING) is False
    assert await service.has_consent("tourist-1", ConsentType.EMERGENCY_CONTACT) is True
    assert await service.has_consent("tourist-1", ConsentType.DATA_SHARING) is False


@pytest.mark.asyncio
async def test_current_without_record(service):
    with pytest.raises(NotFound):
        await service.current("tourist-1", ConsentType.DATA_SHARING)


@pytest.mark.asyncio
async def test_history_is_per_user(service):
    await service.record("tourist-1", ConsentType.MARKETING, True, "newsletter", "1.0")
    await service.record("tourist-2", ConsentType.MARKETING, True, "newsletter", "1.0")

    assert len(await service.history("tourist-1")) == 1
    assert await service.history("nobody") == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "user_id, purpose, version",
    [("", "p", "1"), ("tourist-1", "", "1"), ("tourist-1", "p", "")],
)
async def test_record_validation(service, user_id, purpose, version):
    with pytest.raises(ValidationError):
        await service.record(user_id, ConsentType.MARKETING, True, purpose, version)


@pytest.mark.asyncio
async def test_unknown_consent_type(service):
    with pytest.raises(ValueError):
        await service.record("tourist-1", "telepathy", True, "p", "1")
