"""
In-app notification inbox.

Push notifications are recorded here per user; clients poll the
notifications API and mark them read.
"""

import asyncio
import uuid
from typing import Any, Dict, List, Optional, Tuple

from common.errors import NotFound
from common.schemas import InAppNotification, utcnow
from common.types import NotificationPriority


class NotificationInbox:
    def __init__(self, max_per_user: int = 200):
        self.max_per_user = max_per_user
        self._items: Dict[str, List[InAppNotification]] = {}
        self._lock = asyncio.Lock()

    async def add(
        self,
        user_id: str,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
    ) -> InAppNotification:
        notification = InAppNotification(
            id=f"ntf_{uuid.uuid4().hex[:10]}",
            user_id=user_id,
            title=title,
            body=body,
            data=data or {},
            priority=priority,
            created_at=utcnow(),
        )
        async with self._lock:
            items = self._items.setdefault(user_id, [])
            items.insert(0, notification)
            del items[self.max_per_user:]
        return notification

    async def list_for_user(
        self, user_id: str, unread_only: bool = False, limit: int = 50
    ) -> Tuple[List[InAppNotification], int]:
        """Newest first, plus the user's unread count."""
        items = self._items.get(user_id, [])
        unread = sum(1 for n in items if not n.read)
        if unread_only:
            items = [n for n in items if not n.read]
        return [n.model_copy() for n in items[:limit]], unread

    async def mark_read(self, user_id: str, notification_id: str) -> InAppNotification:
        async with self._lock:
            for n in self._items.get(user_id, []):
                if n.id == notification_id:
                    n.read = True
                    return n.model_copy()
        raise NotFound(f"Notification '{notification_id}' not found")

    async def mark_all_read(self, user_id: str) -> int:
        async with self._lock:
            changed = 0
            for n in self._items.get(user_id, []):
                if not n.read:
                    n.read = True
                    changed += 1
        return changed
