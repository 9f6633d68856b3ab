# models/audit.py
from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, Index, String, Text, func
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class AuditEventType(str, enum.Enum):
    emergency = "emergency"  # SOS alert lifecycle
    zone = "zone"  # geofence set edits
    location = "location"
    notification = "notification"
    user_management = "user_management"
    consent = "consent"
    system = "system"


class Audit(Base):
    """Append-only trail of safety-relevant actions, newest rows read first."""

    __tablename__ = "audit"
    __table_args__ = (Index("ix_audit_event_type_created_at", "event_type", "created_at"),)

    log_id: Mapped[uuid.UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    event_type: Mapped[AuditEventType] = mapped_column(
        Enum(AuditEventType, name="audit_event_type", native_enum=True)
    )
    # Tourist who triggered the action; NULL for operator edits such as zone uploads
    user_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    # Alert id, zone id or consent type the entry is about
    event_id: Mapped[Optional[str]] = mapped_column(String(64))
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<Audit {self.event_type.value if self.event_type else None} {self.event_id}>"
