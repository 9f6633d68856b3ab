"""
Twilio SMS Client
SMS fallback for SOS alerts when an emergency contact has no email address
"""

import logging
import re
from typing import Optional

from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client

from libs.config import config

logger = logging.getLogger(__name__)

# Twilio rejects bodies longer than this
SMS_MAX_LENGTH = 1600

_E164 = re.compile(r"^\+[1-9]\d{6,14}$")


def normalize_phone(phone: str) -> str:
    """Strip spaces, dashes and brackets; the result must be E.164."""
    cleaned = re.sub(r"[\s\-().]", "", phone or "")
    if cleaned.startswith("00"):
        cleaned = "+" + cleaned[2:]
    if not _E164.match(cleaned):
        raise ValueError(f"Not an E.164 phone number: {phone!r}")
    return cleaned


def clip_body(message: str) -> str:
    if len(message) <= SMS_MAX_LENGTH:
        return message
    return message[: SMS_MAX_LENGTH - 3] + "..."


class TwilioSmsClient:
    """Blocking Twilio client; call send_sms through asyncio.to_thread."""

    def __init__(
        self,
        account_sid: Optional[str] = None,
        auth_token: Optional[str] = None,
        from_phone: Optional[str] = None,
        client: Optional[Client] = None,
    ):
        self.from_phone = from_phone or config.TWILIO_PHONE_NUMBER
        account_sid = account_sid or config.TWILIO_ACCOUNT_SID
        auth_token = auth_token or config.TWILIO_AUTH_TOKEN

        if client is None and not all([account_sid, auth_token, self.from_phone]):
            raise ValueError(
                "Missing Twilio configuration. Please set TWILIO_ACCOUNT_SID, "
                "TWILIO_AUTH_TOKEN, and TWILIO_PHONE_NUMBER in your .env file"
            )
        self.client = client or Client(account_sid, auth_token)

    def send_sms(self, to_phone: str, message: str) -> dict:
        """Returns {"status": "sent"|"failed", "sid", "error"}."""
        try:
            to = normalize_phone(to_phone)
        except ValueError as e:
            return {"status": "failed", "sid": None, "error": str(e)}

        try:
            msg = self.client.messages.create(body=clip_body(message), from_=self.from_phone, to=to)
        except TwilioRestException as e:
            logger.warning("Twilio rejected SMS to %s: %s", to, e.msg)
            return {"status": "failed", "sid": None, "error": str(e)}
        return {"status": "sent", "sid": msg.sid, "error": None}


_twilio_client: Optional[TwilioSmsClient] = None


def get_twilio_client() -> TwilioSmsClient:
    global _twilio_client
    if _twilio_client is None:
        _twilio_client = TwilioSmsClient()
    return _twilio_client
