import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import Enum, ForeignKey, Index, Integer, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from sla_engine.models.base import Base, JSONType, NotificationKind, UTCDateTime, utcnow


class NotificationIntent(Base):
    """Outbox row consumed by the email subsystem. Never deleted by the engine."""

    __tablename__ = "notification_intents"
    __table_args__ = (
        Index("ix_notification_intents_tracking_id", "tracking_id"),
        Index("ix_notification_intents_dispatched_at", "dispatched_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tracking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("sla_trackings.id"), nullable=False
    )
    ticket_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("tickets.id"), nullable=False)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    kind: Mapped[NotificationKind] = mapped_column(
        Enum(NotificationKind, name="notificationkind"), nullable=False
    )
    record_snapshot: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, server_default=func.now()
    )
    dispatched_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    attempts: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    last_error: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    next_attempt_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
