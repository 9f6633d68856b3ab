"""
Consent log - append-only record of what each user agreed to.

Revoking never deletes anything; it appends a record with granted=False, so
the current state of a consent type is always its newest record.
"""

import logging
import uuid
from datetime import datetime
from typing import Callable, List, Optional

from common.constants import CONSENT_HISTORY_LIMIT
from common.errors import NotFound, ValidationError
from common.ports import ConsentStore
from common.schemas import ConsentRecord, utcnow
from common.types import ConsentType
from libs.audit_logger import AuditTrail

logger = logging.getLogger(__name__)


class ConsentService:
    def __init__(
        self,
        store: ConsentStore,
        audit: Optional[AuditTrail] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.audit = audit
        self.clock = clock

    async def record(
        self,
        user_id: str,
        consent_type: ConsentType,
        granted: bool,
        purpose: str,
        version: str,
    ) -> ConsentRecord:
        if not user_id:
            raise ValidationError("user_id is required")
        if not purpose or not version:
            raise ValidationError("purpose and version are required")

        record = ConsentRecord(
            id=f"consent_{uuid.uuid4().hex[:12]}",
            user_id=user_id,
            type=ConsentType(consent_type),
            granted=granted,
            purpose=purpose,
            version=version,
            timestamp=self.clock(),
        )
        await self.store.append(record)
        logger.info(
            "Consent %s for user %s: %s (v%s)",
            record.type.value,
            user_id,
            "granted" if granted else "denied",
            version,
        )
        if self.audit is not None:
            await self.audit.record(
                event_type="consent",
                message=f"{record.type.value} {'granted' if granted else 'revoked'} (v{version})",
                user_id=user_id,
                event_id=record.id,
            )
        return record

    async def history(self, user_id: str) -> List[ConsentRecord]:
        return await self.store.history(user_id, limit=CONSENT_HISTORY_LIMIT)

    async def current(self, user_id: str, consent_type: ConsentType) -> ConsentRecord:
        record = await self.store.latest(user_id, ConsentType(consent_type))
        if record is None:
            raise NotFound(f"No {ConsentType(consent_type).value} consent for user '{user_id}'")
        return record

    async def has_consent(self, user_id: str, consent_type: ConsentType) -> bool:
        record = await self.store.latest(user_id, ConsentType(consent_type))
        return record.granted if record else False

    async def revoke(
        self, user_id: str, consent_type: ConsentType, purpose: str, version: str
    ) -> ConsentRecord:
        return await self.record(user_id, consent_type, False, purpose, version)
