"""
Shared test fixtures.

This module provides reusable fixtures for:
- A small Delhi zone set (high-risk polygon, medium-risk circle, restricted circle)
- In-memory stores and a recording notification sink
- A fully wired ServiceContainer for API tests
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Set

import pytest

from common.ports import NotificationSink
from common.schemas import (
    DeliveryResult,
    EmergencyContact,
    Geofence,
    ResponderRef,
    UserProfile,
)
from common.storage import (
    InMemoryAlertStore,
    InMemoryConsentStore,
    InMemoryLocationStore,
    InMemoryResponderDirectory,
    InMemoryUserStore,
)
from common.types import (
    DeliveryChannel,
    DeliveryStatus,
    ResponderRole,
    RiskLevel,
    ZoneKind,
    ZoneType,
)
from libs.audit_logger import AuditTrail
from libs.config import Config
from libs.geo import Coordinate
from libs.task_queue import BackgroundTaskQueue
from services.container import ServiceContainer
from services.zones.zone_index import ZoneIndex

# Inside the high-risk polygon
HIGH_RISK_POINT = Coordinate(latitude=28.6400, longitude=77.2100)
# Inside the medium-risk circle
MEDIUM_RISK_POINT = Coordinate(latitude=28.6562, longitude=77.2410)
# Inside the restricted (high-risk) circle
RESTRICTED_POINT = Coordinate(latitude=28.5960, longitude=77.1350)
# Outside every zone
SAFE_POINT = Coordinate(latitude=28.5500, longitude=77.3000)


def make_zones() -> List[Geofence]:
    return [
        Geofence(
            id="paharganj",
            name="Paharganj Night Market",
            kind=ZoneKind.POLYGON,
            vertices=[
                Coordinate(latitude=28.6420, longitude=77.2080),
                Coordinate(latitude=28.6420, longitude=77.2160),
                Coordinate(latitude=28.6370, longitude=77.2160),
                Coordinate(latitude=28.6370, longitude=77.2080),
            ],
            risk_level=RiskLevel.HIGH,
        ),
        Geofence(
            id="red-fort",
            name="Red Fort Perimeter",
            kind=ZoneKind.CIRCLE,
            center=Coordinate(latitude=28.6562, longitude=77.2410),
            radius_meters=800,
            risk_level=RiskLevel.MEDIUM,
        ),
        Geofence(
            id="cantonment",
            name="Delhi Cantonment",
            kind=ZoneKind.CIRCLE,
            center=Coordinate(latitude=28.5960, longitude=77.1350),
            radius_meters=1500,
            risk_level=RiskLevel.HIGH,
            zone_type=ZoneType.RESTRICTED,
        ),
    ]


def make_responders() -> List[ResponderRef]:
    return [
        ResponderRef(
            responder_id="police-1",
            role=ResponderRole.POLICE,
            name="Paharganj Police Station",
            coordinate=Coordinate(latitude=28.6430, longitude=77.2130),
        ),
        ResponderRef(
            responder_id="ambulance-1",
            role=ResponderRole.AMBULANCE,
            name="Lady Hardinge Hospital",
            coordinate=Coordinate(latitude=28.6360, longitude=77.2050),
        ),
        ResponderRef(
            responder_id="volunteer-1",
            role=ResponderRole.VOLUNTEER,
            name="Tourist Help Desk",
            coordinate=Coordinate(latitude=28.6410, longitude=77.2110),
        ),
        ResponderRef(
            responder_id="police-far",
            role=ResponderRole.POLICE,
            name="Colaba Police Station",
            coordinate=Coordinate(latitude=18.9067, longitude=72.8147),
        ),
    ]


class FakeSink(NotificationSink):
    """Records every send; addresses in `fail_for` get a FAILED result."""

    def __init__(self, fail_for: Optional[Set[str]] = None):
        self.fail_for = set(fail_for or ())
        self.emails: List[Dict[str, Any]] = []
        self.pushes: List[Dict[str, Any]] = []
        self.sms: List[Dict[str, Any]] = []

    def _result(self, channel: DeliveryChannel, recipient: str) -> DeliveryResult:
        if recipient in self.fail_for:
            return DeliveryResult(
                channel=channel,
                recipient=recipient,
                status=DeliveryStatus.FAILED,
                error="mailbox unavailable",
            )
        return DeliveryResult(
            channel=channel, recipient=recipient, status=DeliveryStatus.SENT, provider_id="fake"
        )

    async def send_email(self, address, subject, body):
        self.emails.append({"to": address, "subject": subject, "body": body})
        return self._result(DeliveryChannel.EMAIL, address)

    async def push_to_user(self, user_id, title, body, data=None):
        self.pushes.append({"user_id": user_id, "title": title, "body": body, "data": data or {}})
        return self._result(DeliveryChannel.PUSH, user_id)

    async def send_sms(self, phone, body):
        self.sms.append({"to": phone, "body": body})
        return self._result(DeliveryChannel.SMS, phone)


class FastSettings(Config):
    """No retries and no SMS, so coordination finishes quickly."""

    NOTIFICATION_TIMEOUT_SECONDS = 2.0
    NOTIFICATION_MAX_RETRIES = 0
    NOTIFICATION_RETRY_BASE_DELAY = 0.0
    NOTIFICATION_SMS_ENABLED = False
    RESPONDER_SEARCH_RADIUS_M = 5000.0
    SAFETY_TIMEZONE = "UTC"
    TASK_QUEUE_WORKERS = 2


async def _seed_tourist(user_store: InMemoryUserStore, user_id: str = "tourist-1") -> UserProfile:
    """A tourist with three emailable contacts."""
    profile = await user_store.upsert_user(
        UserProfile(user_id=user_id, name="Asha Verma", email="asha@example.com")
    )
    for i, email in enumerate(["mum@example.com", "dad@example.com", "friend@example.com"]):
        await user_store.upsert_contact(
            user_id,
            EmergencyContact(
                contact_id=f"c{i + 1}",
                name=f"Contact {i + 1}",
                phone=f"+9198000000{i + 1}",
                email=email,
                is_primary=i == 0,
            ),
        )
    return profile


@pytest.fixture()
def zone_index():
    return ZoneIndex(make_zones())


@pytest.fixture()
def fixed_now():
    return datetime(2026, 3, 14, 23, 0, tzinfo=timezone.utc)


@pytest.fixture()
def user_store():
    return InMemoryUserStore()


@pytest.fixture()
def alert_store():
    return InMemoryAlertStore()


@pytest.fixture()
def location_store():
    return InMemoryLocationStore(retention=timedelta(days=3650))


@pytest.fixture()
def consent_store():
    return InMemoryConsentStore()


@pytest.fixture()
def responder_directory():
    return InMemoryResponderDirectory(make_responders(), radius_m=5000.0)


@pytest.fixture()
def fake_sink():
    return FakeSink()


@pytest.fixture()
def container(
    zone_index,
    user_store,
    alert_store,
    location_store,
    consent_store,
    responder_directory,
    fake_sink,
):
    return ServiceContainer(
        zone_index=zone_index,
        user_store=user_store,
        alert_store=alert_store,
        location_store=location_store,
        consent_store=consent_store,
        responders=responder_directory,
        sink=fake_sink,
        task_queue=BackgroundTaskQueue("test-coordination", workers=2),
        audit=AuditTrail(),
        settings=FastSettings(),
    )


@pytest.fixture()
def points():
    return SimpleNamespace(
        high_risk=HIGH_RISK_POINT,
        medium_risk=MEDIUM_RISK_POINT,
        restricted=RESTRICTED_POINT,
        safe=SAFE_POINT,
    )


@pytest.fixture()
def sink_factory():
    return FakeSink


@pytest.fixture()
def seed_tourist():
    """Coroutine function: seed_tourist(user_store, user_id="tourist-1")."""
    return _seed_tourist
