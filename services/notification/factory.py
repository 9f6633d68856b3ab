import asyncio
import uuid
from typing import Dict

from common.schemas import DeliveryResult
from common.types import DeliveryChannel, DeliveryStatus, NotificationPriority
from libs.config import config
from libs.email_client import get_email_client
from libs.twilio_client import get_twilio_client
from services.notification.inbox import NotificationInbox

DUMMY_MODES = {"dummy", "dev", "test"}


class BaseSender:
    """Base class for notification senders"""

    channel: DeliveryChannel

    async def send(self, payload: Dict) -> DeliveryResult:
        """
        Send notification via this channel.

        Args:
            payload: Channel-specific payload dictionary

        Returns:
            DeliveryResult for the single recipient
        """
        raise NotImplementedError("Sender must implement send()")


class PushSender(BaseSender):
    """Push notification sender; notifications land in the user's in-app inbox"""

    channel = DeliveryChannel.PUSH

    def __init__(self, inbox: NotificationInbox):
        self.inbox = inbox

    async def send(self, payload: Dict) -> DeliveryResult:
        """
        Args:
            payload: Dictionary with user_id, title, body, data
        """
        data = dict(payload.get("data") or {})
        priority = NotificationPriority(data.get("priority", NotificationPriority.MEDIUM.value))
        notification = await self.inbox.add(
            user_id=payload["user_id"],
            title=payload["title"],
            body=payload["body"],
            data=data,
            priority=priority,
        )
        return DeliveryResult(
            channel=self.channel,
            recipient=payload["user_id"],
            status=DeliveryStatus.SENT,
            provider_id=notification.id,
        )


class EmailSender(BaseSender):
    """Email sender backed by Brevo"""

    channel = DeliveryChannel.EMAIL

    async def send(self, payload: Dict) -> DeliveryResult:
        """
        Args:
            payload: Dictionary with to_email, subject, body
        """
        if config.NOTIFICATION_EMAIL_MODE in DUMMY_MODES:
            return DeliveryResult(
                channel=self.channel,
                recipient=payload["to_email"],
                status=DeliveryStatus.SENT,
                provider_id=f"EMAIL-DUMMY-{uuid.uuid4().hex[:6]}",
            )
        result = await get_email_client().send_email(
            payload["to_email"], payload["subject"], payload["body"]
        )
        return DeliveryResult(
            channel=self.channel,
            recipient=payload["to_email"],
            status=DeliveryStatus(result["status"]),
            provider_id=result.get("message_id"),
            error=result.get("error"),
        )


class SmsSender(BaseSender):
    """SMS notification sender backed by Twilio"""

    channel = DeliveryChannel.SMS

    async def send(self, payload: Dict) -> DeliveryResult:
        """
        Args:
            payload: Dictionary with to_phone, message
        """
        if config.NOTIFICATION_SMS_MODE in DUMMY_MODES:
            return DeliveryResult(
                channel=self.channel,
                recipient=payload["to_phone"],
                status=DeliveryStatus.SENT,
                provider_id="SMS-DUMMY",
            )
        twilio = get_twilio_client()
        # The Twilio client is blocking
        twilio_result = await asyncio.to_thread(
            twilio.send_sms, to_phone=payload["to_phone"], message=payload["message"]
        )
        return DeliveryResult(
            channel=self.channel,
            recipient=payload["to_phone"],
            status=DeliveryStatus(twilio_result["status"]),
            provider_id=twilio_result.get("sid"),
            error=twilio_result.get("error"),
        )


class NotificationFactory:
    """Factory for per-channel senders"""

    def __init__(self, inbox: NotificationInbox):
        self._senders: Dict[DeliveryChannel, BaseSender] = {
            DeliveryChannel.PUSH: PushSender(inbox),
            DeliveryChannel.EMAIL: EmailSender(),
            DeliveryChannel.SMS: SmsSender(),
        }

    def get_sender(self, channel: DeliveryChannel) -> BaseSender:
        try:
            return self._senders[DeliveryChannel(channel)]
        except (KeyError, ValueError):
            raise ValueError(f"Unsupported channel: {channel}")
