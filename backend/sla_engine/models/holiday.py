import uuid
from datetime import date

from sqlalchemy import Boolean, Date, Enum, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sla_engine.models.base import Base, HolidaySupportLevel, TimestampMixin


class HolidayCalendar(TimestampMixin, Base):
    __tablename__ = "holiday_calendars"
    __table_args__ = (Index("ix_holiday_calendars_tenant_id", "tenant_id"),)

    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    country: Mapped[str | None] = mapped_column(String, nullable=True)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")

    # Relationships
    dates: Mapped[list["HolidayDate"]] = relationship(
        "HolidayDate", back_populates="calendar", lazy="raise", cascade="all, delete-orphan"
    )


class HolidayDate(TimestampMixin, Base):
    __tablename__ = "holiday_dates"
    __table_args__ = (Index("ix_holiday_dates_calendar_id", "calendar_id"),)

    calendar_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("holiday_calendars.id"), nullable=False
    )
    holiday_date: Mapped[date] = mapped_column(Date, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    support_level: Mapped[HolidaySupportLevel] = mapped_column(
        Enum(HolidaySupportLevel, name="holidaysupportlevel"),
        default=HolidaySupportLevel.NONE,
        nullable=False,
    )

    # Relationships
    calendar: Mapped["HolidayCalendar"] = relationship(
        "HolidayCalendar", back_populates="dates", lazy="raise"
    )
