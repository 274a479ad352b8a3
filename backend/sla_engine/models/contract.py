import uuid
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Column, Float, ForeignKey, Index, String, Table, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sla_engine.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from sla_engine.models.holiday import HolidayCalendar
    from sla_engine.models.shift import Shift
    from sla_engine.models.sla_policy import SlaPolicy
    from sla_engine.models.support_type import SupportType


contract_shifts = Table(
    "contract_shifts",
    Base.metadata,
    Column("contract_id", Uuid, ForeignKey("contracts.id"), primary_key=True),
    Column("shift_id", Uuid, ForeignKey("shifts.id"), primary_key=True),
)

contract_holiday_calendars = Table(
    "contract_holiday_calendars",
    Base.metadata,
    Column("contract_id", Uuid, ForeignKey("contracts.id"), primary_key=True),
    Column("calendar_id", Uuid, ForeignKey("holiday_calendars.id"), primary_key=True),
)


class Contract(TimestampMixin, Base):
    """Binds a customer to its coverage configuration. Not edited after creation."""

    __tablename__ = "contracts"
    __table_args__ = (Index("ix_contracts_tenant_id", "tenant_id"),)

    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    contract_number: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    customer_name: Mapped[str] = mapped_column(String, nullable=False)
    support_type_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("support_types.id"), nullable=True
    )
    sla_policy_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("sla_policies.id"), nullable=True
    )
    # Billing only; never used in SLA math.
    after_hours_multiplier: Mapped[float] = mapped_column(Float, default=1.5, server_default="1.5")
    weekend_multiplier: Mapped[float] = mapped_column(Float, default=2.0, server_default="2.0")

    # Relationships
    support_type: Mapped[Optional["SupportType"]] = relationship("SupportType", lazy="raise")
    sla_policy: Mapped[Optional["SlaPolicy"]] = relationship("SlaPolicy", lazy="raise")
    shifts: Mapped[list["Shift"]] = relationship("Shift", secondary=contract_shifts, lazy="raise")
    holiday_calendars: Mapped[list["HolidayCalendar"]] = relationship(
        "HolidayCalendar", secondary=contract_holiday_calendars, lazy="raise"
    )
