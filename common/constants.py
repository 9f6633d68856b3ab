"""
Application-wide constants for the tourist safety backend.

This module contains all shared constants used across the application.
"""

from common.types import FactorTag, RiskLevel

# ========= Service Configuration =========
# Service configuration: service_name -> (module_path, port)
SERVICES = {
    "user_management": ("services.user_management.main", 20000),
    "notification": ("services.notification.main", 20001),
    "location": ("services.location.main", 20002),
    "safety_scoring": ("services.safety_scoring.main", 20003),
    "zones": ("services.zones.main", 20004),
    "consent": ("services.consent.main", 20005),
    "sos": ("services.sos.main", 20006),
}

# All routers in one process
GATEWAY_SERVICE = ("services.api_gateway.main", 8080)

API_PREFIX = "/api/v1"

# ========= Safety Scoring =========
BASE_SAFETY_SCORE = 100

ZONE_PENALTIES = {
    RiskLevel.HIGH: 25,
    RiskLevel.MEDIUM: 15,
    RiskLevel.LOW: 0,
}

ZONE_FACTORS = {
    RiskLevel.HIGH: FactorTag.HIGH_RISK_AREA,
    RiskLevel.MEDIUM: FactorTag.MEDIUM_RISK_AREA,
}

NIGHT_PENALTY = 15
# Night is hour < NIGHT_START_BEFORE or hour > NIGHT_END_AFTER (local time)
NIGHT_START_BEFORE = 6
NIGHT_END_AFTER = 20

RECENT_ALERT_PENALTY = 10
DEFAULT_RECENT_ALERT_CAP = 5

# Penalty per inactivity gap, keyed by the risk of the sample that ended the gap.
# None covers points outside every zone.
INACTIVITY_PENALTIES = {
    RiskLevel.HIGH: 10,
    RiskLevel.MEDIUM: 6,
    RiskLevel.LOW: 3,
    None: 3,
}
DEFAULT_INACTIVITY_THRESHOLD_MINUTES = 30

SOS_PENALTY = 30

# score >= threshold -> band, checked top down
RISK_BAND_THRESHOLDS = (80, 60, 40, 20)

RECOMMENDATIONS = {
    FactorTag.HIGH_RISK_AREA: "Move to a safer area immediately",
    FactorTag.MEDIUM_RISK_AREA: "Stay in well-lit, busy areas",
    FactorTag.NIGHT_TIME: "Avoid traveling alone at night",
    FactorTag.RECENT_ALERTS: "Be extra cautious in this area",
    FactorTag.INACTIVITY: "Check in with your trusted contacts regularly",
    FactorTag.SOS_ALERT: "Stay where responders can reach you",
}

# ========= Location =========
# Location samples expire after 30 days
LOCATION_RETENTION_DAYS = 30
LOCATION_HISTORY_LIMIT = 100

# ========= Alerts =========
ALERT_SUMMARY_RECENT = 5
DEFAULT_HISTORY_PAGE_SIZE = 20

# ========= Consent =========
CONSENT_HISTORY_LIMIT = 50
