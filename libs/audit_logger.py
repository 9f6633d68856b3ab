# libs/audit_logger.py
from __future__ import annotations

import logging
from collections import deque
from typing import Any, Callable, Deque, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from libs.config import config
from models.audit import Audit, AuditEventType

logger = logging.getLogger(__name__)

ALLOWED_EVENT_TYPES = {e.value for e in AuditEventType}

# Audit entries that could not reach the database (or no database configured).
# Bounded: the oldest entries are dropped once AUDIT_MEMORY_LIMIT is reached.
audit_logs: Deque[Dict[str, Any]] = deque(maxlen=config.AUDIT_MEMORY_LIMIT)


def _normalize_event_type(event_type: str) -> str:
    et = (event_type or "").strip()
    if et not in ALLOWED_EVENT_TYPES:
        logger.warning("Unknown audit event_type '%s', logging as 'system'.", et)
        return AuditEventType.system.value
    return et


def _remember(entry: Dict[str, Any]) -> None:
    audit_logs.append(entry)


async def write_audit(
    *,
    db: AsyncSession,
    event_type: str,
    message: str,
    user_id: Optional[str] = None,
    event_id: Optional[str] = None,
    commit: bool = False,
):
    """
    Write an audit record.

    Args:
        db: AsyncSession
        event_type: emergency / location / notification / ...
        message: human-readable message (NOT NULL)
        user_id: who triggered the event (nullable)
        event_id: affected entity id (alert id, zone id, ...)
        commit: commit here instead of leaving it to the caller

    Returns:
        log_id on success, None on failure
    """
    if db is None:
        raise ValueError("write_audit requires an AsyncSession")

    et = _normalize_event_type(event_type)
    msg = (message or "").strip() or "(no message)"

    audit_row = Audit(
        user_id=user_id,
        event_type=AuditEventType(et),
        event_id=event_id,
        message=msg,
    )

    try:
        db.add(audit_row)
        # flush assigns log_id without committing
        await db.flush()

        if commit:
            await db.commit()

        return audit_row.log_id

    except Exception as exc:
        # An audit failure must not affect the main operation
        logger.exception(
            "Audit write failed: event_type=%s user_id=%s event_id=%s error=%s",
            et,
            user_id,
            event_id,
            repr(exc),
        )
        _remember(
            {
                "event_type": et,
                "user_id": user_id,
                "event_id": event_id,
                "message": msg,
                "error": repr(exc),
            }
        )
        try:
            await db.rollback()
        except Exception:
            logger.exception("Audit rollback failed")
        return None


class AuditTrail:
    """
    Best-effort audit sink used by the services.

    With a session factory every entry goes through write_audit in its own
    session; without one entries are kept in `audit_logs`.
    """

    def __init__(self, session_factory: Optional[Callable[[], AsyncSession]] = None):
        self.session_factory = session_factory

    async def record(
        self,
        *,
        event_type: str,
        message: str,
        user_id: Optional[str] = None,
        event_id: Optional[str] = None,
    ):
        if self.session_factory is None:
            _remember(
                {
                    "event_type": _normalize_event_type(event_type),
                    "user_id": user_id,
                    "event_id": event_id,
                    "message": message,
                }
            )
            return None

        async with self.session_factory() as db:
            return await write_audit(
                db=db,
                event_type=event_type,
                message=message,
                user_id=user_id,
                event_id=event_id,
                commit=True,
            )
