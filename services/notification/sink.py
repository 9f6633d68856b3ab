"""
Notification sink used by the safety core.

Routes email, SMS and push through the per-channel senders of
NotificationFactory and logs every failed delivery.
"""

import logging
from typing import Any, Dict, Optional

from common.ports import NotificationSink
from common.schemas import DeliveryResult
from common.types import DeliveryChannel, DeliveryStatus
from services.notification.factory import NotificationFactory
from services.notification.inbox import NotificationInbox

logger = logging.getLogger(__name__)


class DefaultNotificationSink(NotificationSink):
    def __init__(self, inbox: NotificationInbox, factory: Optional[NotificationFactory] = None):
        self.inbox = inbox
        self._factory = factory or NotificationFactory(inbox)

    async def _send(self, channel: DeliveryChannel, payload: Dict[str, Any]) -> DeliveryResult:
        result = await self._factory.get_sender(channel).send(payload)
        if result.status == DeliveryStatus.FAILED:
            logger.warning(
                "%s delivery to %s failed: %s", channel.value, result.recipient, result.error
            )
        return result

    async def send_email(self, address: str, subject: str, body: str) -> DeliveryResult:
        return await self._send(
            DeliveryChannel.EMAIL, {"to_email": address, "subject": subject, "body": body}
        )

    async def push_to_user(
        self, user_id: str, title: str, body: str, data: Optional[Dict[str, Any]] = None
    ) -> DeliveryResult:
        return await self._send(
            DeliveryChannel.PUSH,
            {"user_id": user_id, "title": title, "body": body, "data": data or {}},
        )

    async def send_sms(self, phone: str, body: str) -> DeliveryResult:
        return await self._send(DeliveryChannel.SMS, {"to_phone": phone, "message": body})
