import uuid
from typing import Any

from sqlalchemy import Boolean, Enum, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from sla_engine.models.base import Base, CoverageLevel, JSONType, PriorityScope, TimestampMixin

DEFAULT_WORK_DAYS = [1, 2, 3, 4, 5]


class SupportType(TimestampMixin, Base):
    """Coverage model: which days are worked and what happens outside them.

    ``work_days`` uses 0 = Sunday ... 6 = Saturday.
    """

    __tablename__ = "support_types"
    __table_args__ = (Index("ix_support_types_tenant_id", "tenant_id"),)

    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    code: Mapped[str] = mapped_column(String, nullable=False)
    work_days: Mapped[list[int]] = mapped_column(JSONType, default=lambda: list(DEFAULT_WORK_DAYS))
    daily_hours: Mapped[int] = mapped_column(Integer, default=9, server_default="9")
    weekend_coverage: Mapped[CoverageLevel] = mapped_column(
        Enum(CoverageLevel, name="coveragelevel"), default=CoverageLevel.NONE, nullable=False
    )
    holiday_coverage: Mapped[CoverageLevel] = mapped_column(
        Enum(CoverageLevel, name="coveragelevel"), default=CoverageLevel.NONE, nullable=False
    )
    on_call_priorities: Mapped[list[str]] = mapped_column(JSONType, default=list)
    pause_conditions: Mapped[list[str]] = mapped_column(JSONType, default=list)
    priority_scope: Mapped[PriorityScope] = mapped_column(
        Enum(PriorityScope, name="priorityscope"), default=PriorityScope.ALL, nullable=False
    )
    sla_enabled: Mapped[dict[str, Any]] = mapped_column(
        JSONType, default=lambda: {"P1": True, "P2": True, "P3": True, "P4": True}
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")
