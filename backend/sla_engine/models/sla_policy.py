import uuid

from sqlalchemy import Boolean, Enum, Float, ForeignKey, Index, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sla_engine.models.base import Base, TicketPriority, TimestampMixin


class SlaPolicy(TimestampMixin, Base):
    __tablename__ = "sla_policies"
    __table_args__ = (Index("ix_sla_policies_tenant_id", "tenant_id"),)

    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    code: Mapped[str] = mapped_column(String, nullable=False)
    warning_threshold: Mapped[float | None] = mapped_column(Float, nullable=True, default=0.80)

    # Relationships
    targets: Mapped[list["SlaPolicyTarget"]] = relationship(
        "SlaPolicyTarget",
        back_populates="policy",
        lazy="raise",
        cascade="all, delete-orphan",
        order_by="SlaPolicyTarget.priority",
    )


class SlaPolicyTarget(TimestampMixin, Base):
    """Per-priority minute budgets of a policy."""

    __tablename__ = "sla_policy_targets"
    __table_args__ = (
        UniqueConstraint("policy_id", "priority", name="uq_sla_policy_targets_policy_priority"),
    )

    policy_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("sla_policies.id"), nullable=False)
    priority: Mapped[TicketPriority] = mapped_column(
        Enum(TicketPriority, name="ticketpriority"), nullable=False
    )
    response_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    resolution_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")

    # Relationships
    policy: Mapped["SlaPolicy"] = relationship("SlaPolicy", back_populates="targets", lazy="raise")
