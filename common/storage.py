"""
In-memory implementations of the collaborator stores.

Used for local development (STORAGE_BACKEND=memory) and tests. Every read
and write copies the stored model so callers never share mutable state with
the store.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from common.constants import LOCATION_RETENTION_DAYS
from common.errors import InvalidTransition, NotFound
from common.ports import (
    AlertStore,
    ConsentStore,
    LocationStore,
    ResponderDirectory,
    UserStore,
)
from common.schemas import (
    Alert,
    ConsentRecord,
    EmergencyContact,
    LocationSample,
    ResponderRef,
    UserProfile,
    utcnow,
)
from common.types import AlertStatus, ConsentType, ResponderRole
from libs.geo import Coordinate, distance_meters


def _sort_key(ts: datetime) -> float:
    return ts.timestamp()


class InMemoryUserStore(UserStore):
    def __init__(self):
        self.users: Dict[str, UserProfile] = {}
        self.contacts: Dict[str, Dict[str, EmergencyContact]] = {}

    async def get_user(self, user_id: str) -> UserProfile:
        user = self.users.get(user_id)
        if user is None:
            raise NotFound(f"User '{user_id}' not found")
        return user.model_copy()

    async def get_emergency_contacts(self, user_id: str) -> List[EmergencyContact]:
        return [c.model_copy() for c in self.contacts.get(user_id, {}).values()]

    async def upsert_user(self, profile: UserProfile) -> UserProfile:
        self.users[profile.user_id] = profile.model_copy()
        return profile

    async def upsert_contact(self, user_id: str, contact: EmergencyContact) -> EmergencyContact:
        if user_id not in self.users:
            raise NotFound(f"User '{user_id}' not found")
        self.contacts.setdefault(user_id, {})[contact.contact_id] = contact.model_copy()
        return contact

    async def remove_contact(self, user_id: str, contact_id: str) -> None:
        contacts = self.contacts.get(user_id, {})
        if contact_id not in contacts:
            raise NotFound(f"Contact '{contact_id}' not found")
        del contacts[contact_id]


class InMemoryAlertStore(AlertStore):
    def __init__(self):
        self.alerts: Dict[str, Alert] = {}

    async def save(self, alert: Alert) -> Alert:
        self.alerts[alert.id] = alert.model_copy(deep=True)
        return alert.model_copy(deep=True)

    async def get(self, alert_id: str) -> Optional[Alert]:
        alert = self.alerts.get(alert_id)
        return alert.model_copy(deep=True) if alert else None

    async def update(
        self, alert: Alert, expected_status: Optional[AlertStatus] = None
    ) -> Alert:
        stored = self.alerts.get(alert.id)
        if stored is None:
            raise NotFound(f"Alert '{alert.id}' not found")
        if expected_status is not None and stored.status != expected_status:
            raise InvalidTransition(
                f"Alert '{alert.id}' is {stored.status.value}, expected {expected_status.value}"
            )
        self.alerts[alert.id] = alert.model_copy(deep=True)
        return alert.model_copy(deep=True)

    async def list_for_user(
        self,
        user_id: str,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Alert]:
        alerts = [
            a
            for a in self.alerts.values()
            if a.user_id == user_id and (since is None or _sort_key(a.timestamp) >= _sort_key(since))
        ]
        alerts.sort(key=lambda a: _sort_key(a.timestamp), reverse=True)
        alerts = alerts[offset:]
        if limit is not None:
            alerts = alerts[:limit]
        return [a.model_copy(deep=True) for a in alerts]


class InMemoryLocationStore(LocationStore):
    """Samples older than the retention window are dropped on every write."""

    def __init__(self, retention: timedelta = timedelta(days=LOCATION_RETENTION_DAYS)):
        self.retention = retention
        self.samples: Dict[str, List[LocationSample]] = {}

    def _prune(self, user_id: str) -> None:
        cutoff = utcnow() - self.retention
        self.samples[user_id] = [
            s for s in self.samples.get(user_id, []) if _sort_key(s.timestamp) >= _sort_key(cutoff)
        ]

    async def add(self, sample: LocationSample) -> LocationSample:
        self.samples.setdefault(sample.user_id, []).append(sample)
        self._prune(sample.user_id)
        return sample

    async def recent_samples(self, user_id: str, since: datetime) -> List[LocationSample]:
        cutoff = _sort_key(since)
        samples = [s for s in self.samples.get(user_id, []) if _sort_key(s.timestamp) >= cutoff]
        return sorted(samples, key=lambda s: _sort_key(s.timestamp))

    async def history(
        self,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 100,
    ) -> List[LocationSample]:
        samples = [
            s
            for s in self.samples.get(user_id, [])
            if (start is None or _sort_key(s.timestamp) >= _sort_key(start))
            and (end is None or _sort_key(s.timestamp) <= _sort_key(end))
        ]
        samples.sort(key=lambda s: _sort_key(s.timestamp), reverse=True)
        return samples[:limit]


class InMemoryResponderDirectory(ResponderDirectory):
    """Static responder roster searched by distance."""

    def __init__(self, responders: Sequence[ResponderRef] = (), radius_m: float = 5000.0):
        self.responders = list(responders)
        self.radius_m = radius_m

    async def nearby(
        self, coordinate: Coordinate, roles: Sequence[ResponderRole]
    ) -> List[ResponderRef]:
        wanted = set(roles)
        hits = []
        for responder in self.responders:
            if responder.role not in wanted:
                continue
            distance = distance_meters(coordinate, responder.coordinate)
            if distance <= self.radius_m:
                hits.append((distance, responder))
        hits.sort(key=lambda pair: pair[0])
        return [responder for _, responder in hits]


class InMemoryConsentStore(ConsentStore):
    def __init__(self):
        self.records: List[ConsentRecord] = []

    async def append(self, record: ConsentRecord) -> ConsentRecord:
        self.records.append(record)
        return record

    async def history(self, user_id: str, limit: int = 50) -> List[ConsentRecord]:
        records = [r for r in reversed(self.records) if r.user_id == user_id]
        records.sort(key=lambda r: _sort_key(r.timestamp), reverse=True)
        return records[:limit]

    async def latest(self, user_id: str, consent_type: ConsentType) -> Optional[ConsentRecord]:
        latest = None
        for r in self.records:
            if r.user_id != user_id or r.type != consent_type:
                continue
            # Later appends win ties
            if latest is None or _sort_key(r.timestamp) >= _sort_key(latest.timestamp):
                latest = r
        return latest


# Demo roster for local development
DEFAULT_RESPONDERS: List[Dict[str, Any]] = [
    {
        "responder_id": "police-delhi-cp",
        "role": "police",
        "name": "Connaught Place Police Station",
        "coordinate": {"latitude": 28.6315, "longitude": 77.2167},
        "phone": "+91112",
    },
    {
        "responder_id": "ambulance-delhi-aiims",
        "role": "ambulance",
        "name": "AIIMS Trauma Centre",
        "coordinate": {"latitude": 28.5672, "longitude": 77.2100},
        "phone": "+91108",
    },
    {
        "responder_id": "police-mumbai-colaba",
        "role": "police",
        "name": "Colaba Police Station",
        "coordinate": {"latitude": 18.9067, "longitude": 72.8147},
        "phone": "+91112",
    },
]
