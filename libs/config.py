"""
Configuration module for loading environment variables
"""

import logging
import os
from typing import List, Optional

from common.types import ResponderRole

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


class Config:
    """Application configuration"""

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Storage: "memory" keeps everything in-process, "postgres" uses SQLAlchemy
    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "memory").lower()

    # Zones loaded at startup (JSON list of geofences)
    ZONES_CONFIG_PATH: Optional[str] = os.getenv("ZONES_CONFIG_PATH")

    # Safety scoring
    SAFETY_TIMEZONE: str = os.getenv("SAFETY_TIMEZONE", "UTC")
    INACTIVITY_THRESHOLD_MINUTES: int = int(os.getenv("INACTIVITY_THRESHOLD_MINUTES", "30"))
    RECENT_ALERT_CAP: int = int(os.getenv("RECENT_ALERT_CAP", "5"))
    RECENT_WINDOW_HOURS: int = int(os.getenv("RECENT_WINDOW_HOURS", "24"))

    # SOS coordination
    NOTIFICATION_TIMEOUT_SECONDS: float = float(os.getenv("NOTIFICATION_TIMEOUT_SECONDS", "10"))
    NOTIFICATION_MAX_RETRIES: int = int(os.getenv("NOTIFICATION_MAX_RETRIES", "2"))
    NOTIFICATION_RETRY_BASE_DELAY: float = float(
        os.getenv("NOTIFICATION_RETRY_BASE_DELAY", "0.5")
    )
    NOTIFICATION_SMS_ENABLED: bool = os.getenv("NOTIFICATION_SMS_ENABLED", "false").lower() in (
        "true",
        "1",
        "yes",
    )
    RESPONDER_ROLES: List[str] = _env_list("RESPONDER_ROLES", "police,ambulance")
    RESPONDER_SEARCH_RADIUS_M: float = float(os.getenv("RESPONDER_SEARCH_RADIUS_M", "5000"))
    TASK_QUEUE_WORKERS: int = int(os.getenv("TASK_QUEUE_WORKERS", "4"))

    # Audit entries kept in memory when no database is configured
    AUDIT_MEMORY_LIMIT: int = int(os.getenv("AUDIT_MEMORY_LIMIT", "1000"))

    # Email (Brevo transactional API)
    NOTIFICATION_EMAIL_MODE: str = os.getenv("NOTIFICATION_EMAIL_MODE", "").lower()
    BREVO_API_KEY: Optional[str] = os.getenv("BREVO_API_KEY")
    BREVO_API_URL: str = os.getenv("BREVO_API_URL", "https://api.brevo.com/v3/smtp/email")
    BREVO_SENDER_EMAIL: str = os.getenv("BREVO_SENDER_EMAIL", "alerts@tourist-safety.local")
    BREVO_SENDER_NAME: str = os.getenv("BREVO_SENDER_NAME", "Tourist Safety Alerts")

    # Twilio Configuration
    NOTIFICATION_SMS_MODE: str = os.getenv("NOTIFICATION_SMS_MODE", "").lower()
    TWILIO_ACCOUNT_SID: Optional[str] = os.getenv("TWILIO_ACCOUNT_SID")
    TWILIO_AUTH_TOKEN: Optional[str] = os.getenv("TWILIO_AUTH_TOKEN")
    TWILIO_PHONE_NUMBER: Optional[str] = os.getenv("TWILIO_PHONE_NUMBER")

    @classmethod
    def validate_twilio_config(cls) -> bool:
        """Check if Twilio configuration is complete"""
        return all(
            [cls.TWILIO_ACCOUNT_SID, cls.TWILIO_AUTH_TOKEN, cls.TWILIO_PHONE_NUMBER]
        )

    @classmethod
    def validate_email_config(cls) -> bool:
        return bool(cls.BREVO_API_KEY)

    @classmethod
    def responder_roles(cls) -> List[ResponderRole]:
        return [ResponderRole(role) for role in cls.RESPONDER_ROLES]


config = Config()


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once for a service process."""
    logging.basicConfig(
        level=(level or config.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
    )
