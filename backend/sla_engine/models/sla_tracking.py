import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    Boolean,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sla_engine.models.base import (
    Base,
    JSONType,
    PauseCondition,
    TicketPriority,
    TimestampMixin,
    UTCDateTime,
    utcnow,
)

if TYPE_CHECKING:
    from sla_engine.models.ticket import Ticket


class SlaTracking(TimestampMixin, Base):
    """Per-ticket SLA state. Written only by ``sla_service`` and the sweep.

    ``config_snapshot`` holds the contract configuration resolved when the
    ticket was created; later edits to support types, shifts or policies do
    not move the deadlines of open tickets.
    """

    __tablename__ = "sla_trackings"
    __table_args__ = (
        Index("ix_sla_trackings_tenant_id", "tenant_id"),
        Index("ix_sla_trackings_resolved_at", "resolved_at"),
    )

    ticket_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tickets.id"), unique=True, nullable=False
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    priority: Mapped[TicketPriority] = mapped_column(
        Enum(TicketPriority, name="ticketpriority"), nullable=False
    )
    started_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    response_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    resolution_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    warning_threshold: Mapped[float] = mapped_column(Float, nullable=False)
    on_call: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    config_snapshot: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)

    response_deadline: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    resolution_deadline: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    responded_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    breach_response: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    breach_resolution: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    warning_response_sent: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false"
    )
    warning_resolution_sent: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false"
    )

    paused_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    pause_reason: Mapped[Optional[PauseCondition]] = mapped_column(
        Enum(PauseCondition, name="pausecondition"), nullable=True
    )
    paused_minutes: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    last_evaluated_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    ticket: Mapped["Ticket"] = relationship("Ticket", back_populates="sla_tracking", lazy="raise")
    pauses: Mapped[list["SlaPauseHistory"]] = relationship(
        "SlaPauseHistory",
        back_populates="tracking",
        lazy="raise",
        order_by="SlaPauseHistory.paused_at",
    )

    @property
    def is_paused(self) -> bool:
        return self.paused_at is not None


class SlaPauseHistory(Base):
    """Append-only pause log. A row is closed once by setting ``resumed_at``."""

    __tablename__ = "sla_pause_history"
    __table_args__ = (Index("ix_sla_pause_history_tracking_id", "tracking_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tracking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("sla_trackings.id"), nullable=False
    )
    paused_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    resumed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    reason: Mapped[PauseCondition] = mapped_column(
        Enum(PauseCondition, name="pausecondition"), nullable=False
    )
    business_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    note: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, server_default=func.now()
    )

    # Relationships
    tracking: Mapped["SlaTracking"] = relationship(
        "SlaTracking", back_populates="pauses", lazy="raise"
    )
