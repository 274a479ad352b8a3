import uuid
from datetime import time

from sqlalchemy import Boolean, Index, Integer, String, Time, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from sla_engine.models.base import Base, TimestampMixin


class Shift(TimestampMixin, Base):
    """Daily support window in a local timezone. ``end_time <= start_time`` crosses midnight."""

    __tablename__ = "shifts"
    __table_args__ = (Index("ix_shifts_tenant_id", "tenant_id"),)

    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    timezone: Mapped[str] = mapped_column(String, default="UTC", server_default="UTC")
    break_minutes: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")
