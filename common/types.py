"""
Type definitions shared across the safety services.

This module contains all enum types used by alerts, zones, scoring,
notifications and consent.
"""

from enum import Enum


class AlertType(str, Enum):
    """Alert origin."""

    SOS = "sos"
    GEOFENCE = "geofence"
    INACTIVITY = "inactivity"
    MANUAL = "manual"
    SYSTEM = "system"


class AlertStatus(str, Enum):
    """Alert lifecycle status. ACTIVE is initial, the rest are terminal."""

    ACTIVE = "active"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"
    FALSE_ALARM = "false_alarm"


TERMINAL_ALERT_STATUSES = frozenset(
    {AlertStatus.RESOLVED, AlertStatus.CANCELLED, AlertStatus.FALSE_ALARM}
)


class Severity(str, Enum):
    """Alert severity level."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ResponderRole(str, Enum):
    POLICE = "police"
    AMBULANCE = "ambulance"
    SECURITY = "security"
    VOLUNTEER = "volunteer"


class RiskLevel(str, Enum):
    """Risk level attached to a geofence."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ZoneKind(str, Enum):
    POLYGON = "polygon"
    CIRCLE = "circle"


class ZoneType(str, Enum):
    SAFE = "safe"
    RISKY = "risky"
    RESTRICTED = "restricted"


class RiskBand(str, Enum):
    """Five-level band derived from a safety score."""

    VERY_LOW = "very_low"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


class FactorTag(str, Enum):
    """Reason a safety score was lowered."""

    NIGHT_TIME = "night_time"
    HIGH_RISK_AREA = "high_risk_area"
    MEDIUM_RISK_AREA = "medium_risk_area"
    SOS_ALERT = "sos_alert"
    INACTIVITY = "inactivity"
    RECENT_ALERTS = "recent_alerts"


class LocationSource(str, Enum):
    PING = "ping"
    SOS = "sos"
    CHECKPOINT = "checkpoint"


class DeliveryChannel(str, Enum):
    EMAIL = "email"
    PUSH = "push"
    SMS = "sms"


class DeliveryStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ConsentType(str, Enum):
    LOCATION_TRACKING = "location_tracking"
    DATA_SHARING = "data_sharing"
    EMERGENCY_CONTACT = "emergency_contact"
    MARKETING = "marketing"
