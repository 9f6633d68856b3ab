"""
Domain models shared by the safety services and their stores.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from common.types import (
    AlertStatus,
    AlertType,
    ConsentType,
    DeliveryChannel,
    DeliveryStatus,
    FactorTag,
    LocationSource,
    NotificationPriority,
    ResponderRole,
    RiskBand,
    RiskLevel,
    Severity,
    ZoneKind,
    ZoneType,
)
from libs.geo import Coordinate


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(ts: datetime) -> datetime:
    """Naive client timestamps are taken as UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


# ========= Zones =========


class Geofence(BaseModel):
    """Named region with a risk level. Geometry is validated when loaded into a ZoneIndex."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    kind: ZoneKind
    vertices: List[Coordinate] = Field(default_factory=list)
    center: Optional[Coordinate] = None
    radius_meters: Optional[float] = None
    risk_level: RiskLevel
    zone_type: ZoneType = ZoneType.RISKY
    description: Optional[str] = None


class ZoneMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    zone_id: str
    zone_name: str
    risk_level: RiskLevel
    zone_type: ZoneType
    kind: ZoneKind


# ========= Location =========


class LocationSample(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    coordinate: Coordinate
    timestamp: datetime
    accuracy: Optional[float] = Field(default=None, ge=0)
    speed: Optional[float] = Field(default=None, ge=0)
    source: LocationSource = LocationSource.PING


# ========= Safety =========


class SafetyAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=0, le=100)
    risk_level: RiskBand
    factors: List[FactorTag] = Field(default_factory=list)
    zone_id: Optional[str] = None
    recommendations: List[str] = Field(default_factory=list)
    assessed_at: datetime


# ========= Users =========


class EmergencyContact(BaseModel):
    contact_id: str
    name: str
    phone: str
    email: Optional[str] = None
    relationship: str = "other"
    is_primary: bool = False


class UserProfile(BaseModel):
    user_id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    nationality: Optional[str] = None
    preferred_language: str = "en"


# ========= Alerts =========


class ResponderRef(BaseModel):
    """Responder returned by a ResponderDirectory lookup."""

    responder_id: str
    role: ResponderRole
    name: str
    coordinate: Coordinate
    phone: Optional[str] = None


class ResponderEntry(BaseModel):
    """Responder attached to an alert."""

    responder_id: str
    role: ResponderRole
    name: Optional[str] = None
    distance_m: Optional[float] = None
    acknowledged: bool = False
    acknowledged_at: Optional[datetime] = None
    response_time_sec: Optional[float] = None


class Alert(BaseModel):
    id: str
    user_id: str
    type: AlertType
    status: AlertStatus = AlertStatus.ACTIVE
    severity: Severity
    coordinate: Coordinate
    accuracy: Optional[float] = None
    message: Optional[str] = None
    timestamp: datetime
    media: List[str] = Field(default_factory=list)
    responders: List[ResponderEntry] = Field(default_factory=list)
    assessment: Optional[SafetyAssessment] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    resolution_notes: Optional[str] = None
    updated_at: Optional[datetime] = None


# ========= Notifications =========


class DeliveryResult(BaseModel):
    channel: DeliveryChannel
    recipient: str
    status: DeliveryStatus
    provider_id: Optional[str] = None
    error: Optional[str] = None


class InAppNotification(BaseModel):
    id: str
    user_id: str
    title: str
    body: str
    data: Dict[str, Any] = Field(default_factory=dict)
    priority: NotificationPriority = NotificationPriority.MEDIUM
    read: bool = False
    created_at: datetime


# ========= Consent =========


class ConsentRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    type: ConsentType
    granted: bool
    purpose: str
    version: str
    timestamp: datetime
