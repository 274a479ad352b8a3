import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Enum, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sla_engine.models.base import Base, TicketPriority, TicketStatus, TimestampMixin, UTCDateTime

if TYPE_CHECKING:
    from sla_engine.models.audit_log import AuditLog
    from sla_engine.models.contract import Contract
    from sla_engine.models.sla_tracking import SlaTracking
    from sla_engine.models.ticket_note import TicketNote


class Ticket(TimestampMixin, Base):
    __tablename__ = "tickets"
    __table_args__ = (
        Index("ix_tickets_tenant_id", "tenant_id"),
        Index("ix_tickets_status", "status"),
        Index("ix_tickets_priority", "priority"),
        Index("ix_tickets_contract_id", "contract_id"),
    )

    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    ticket_number: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[TicketStatus] = mapped_column(
        Enum(TicketStatus, name="ticketstatus"),
        default=TicketStatus.NEW,
        server_default="NEW",
        nullable=False,
    )
    priority: Mapped[TicketPriority] = mapped_column(
        Enum(TicketPriority, name="ticketpriority"), nullable=False
    )
    contract_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("contracts.id"), nullable=True
    )
    responded_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    # Relationships
    contract: Mapped[Optional["Contract"]] = relationship("Contract", lazy="raise")
    notes: Mapped[list["TicketNote"]] = relationship(
        "TicketNote", back_populates="ticket", lazy="raise"
    )
    audit_entries: Mapped[list["AuditLog"]] = relationship(
        "AuditLog", back_populates="ticket", lazy="raise"
    )
    sla_tracking: Mapped[Optional["SlaTracking"]] = relationship(
        "SlaTracking", back_populates="ticket", uselist=False, lazy="raise"
    )
