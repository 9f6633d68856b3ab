"""
Collaborator contracts used by the safety core.

The core only calls these; concrete implementations live in common/storage.py
(in-memory), services/*/repository.py (SQLAlchemy) and
services/notification/sink.py.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from common.schemas import (
    Alert,
    ConsentRecord,
    DeliveryResult,
    EmergencyContact,
    LocationSample,
    ResponderRef,
    UserProfile,
)
from common.types import AlertStatus, ConsentType, ResponderRole
from libs.geo import Coordinate


class UserStore:
    """Base class for user profile / emergency contact storage"""

    async def get_user(self, user_id: str) -> UserProfile:
        """Return the profile; raises NotFound when absent."""
        raise NotImplementedError("UserStore must implement get_user()")

    async def get_emergency_contacts(self, user_id: str) -> List[EmergencyContact]:
        raise NotImplementedError("UserStore must implement get_emergency_contacts()")

    async def upsert_user(self, profile: UserProfile) -> UserProfile:
        raise NotImplementedError("UserStore must implement upsert_user()")

    async def upsert_contact(self, user_id: str, contact: EmergencyContact) -> EmergencyContact:
        raise NotImplementedError("UserStore must implement upsert_contact()")

    async def remove_contact(self, user_id: str, contact_id: str) -> None:
        raise NotImplementedError("UserStore must implement remove_contact()")


class AlertStore:
    """Base class for alert storage"""

    async def save(self, alert: Alert) -> Alert:
        raise NotImplementedError("AlertStore must implement save()")

    async def get(self, alert_id: str) -> Optional[Alert]:
        raise NotImplementedError("AlertStore must implement get()")

    async def update(
        self, alert: Alert, expected_status: Optional[AlertStatus] = None
    ) -> Alert:
        """
        Overwrite a stored alert.

        When expected_status is given the write only happens if the stored
        status still equals it; otherwise InvalidTransition is raised.
        """
        raise NotImplementedError("AlertStore must implement update()")

    async def list_for_user(
        self,
        user_id: str,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Alert]:
        """Alerts of a user, newest first."""
        raise NotImplementedError("AlertStore must implement list_for_user()")


class LocationStore:
    """Base class for location sample storage"""

    async def add(self, sample: LocationSample) -> LocationSample:
        raise NotImplementedError("LocationStore must implement add()")

    async def recent_samples(self, user_id: str, since: datetime) -> List[LocationSample]:
        """Samples at or after `since`, oldest first."""
        raise NotImplementedError("LocationStore must implement recent_samples()")

    async def history(
        self,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 100,
    ) -> List[LocationSample]:
        """Samples in [start, end], newest first."""
        raise NotImplementedError("LocationStore must implement history()")


class NotificationSink:
    """Base class for outbound notification channels"""

    async def send_email(self, address: str, subject: str, body: str) -> DeliveryResult:
        raise NotImplementedError("NotificationSink must implement send_email()")

    async def push_to_user(
        self, user_id: str, title: str, body: str, data: Optional[Dict[str, Any]] = None
    ) -> DeliveryResult:
        raise NotImplementedError("NotificationSink must implement push_to_user()")

    async def send_sms(self, phone: str, body: str) -> DeliveryResult:
        raise NotImplementedError("NotificationSink must implement send_sms()")


class ResponderDirectory:
    """Base class for responder lookup"""

    async def nearby(
        self, coordinate: Coordinate, roles: Sequence[ResponderRole]
    ) -> List[ResponderRef]:
        raise NotImplementedError("ResponderDirectory must implement nearby()")


class ConsentStore:
    """Base class for the append-only consent log"""

    async def append(self, record: ConsentRecord) -> ConsentRecord:
        raise NotImplementedError("ConsentStore must implement append()")

    async def history(self, user_id: str, limit: int = 50) -> List[ConsentRecord]:
        """Records of a user, newest first."""
        raise NotImplementedError("ConsentStore must implement history()")

    async def latest(self, user_id: str, consent_type: ConsentType) -> Optional[ConsentRecord]:
        raise NotImplementedError("ConsentStore must implement latest()")
