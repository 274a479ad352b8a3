import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

# JSONB on PostgreSQL, plain JSON elsewhere (the test-suite runs on SQLite).
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware timestamp that always round-trips as UTC.

    SQLite drops tzinfo on the way back; PostgreSQL returns the session
    timezone. Both are normalised so the engine only ever compares aware
    UTC instants.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            raise ValueError("Naive datetime passed to a UTC column")
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, server_default=func.now(), onupdate=utcnow
    )


class TicketStatus(str, enum.Enum):
    NEW = "NEW"
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    PENDING = "PENDING"
    ON_HOLD = "ON_HOLD"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"


class TicketPriority(str, enum.Enum):
    P1 = "P1"
    P2 = "P2"
    P3 = "P3"
    P4 = "P4"


class CoverageLevel(str, enum.Enum):
    NONE = "NONE"
    ON_CALL = "ON_CALL"
    FULL = "FULL"


class HolidaySupportLevel(str, enum.Enum):
    NONE = "NONE"
    EMERGENCY_ONLY = "EMERGENCY_ONLY"
    FULL = "FULL"


class PauseCondition(str, enum.Enum):
    OUTSIDE_BUSINESS_HOURS = "OUTSIDE_BUSINESS_HOURS"
    WEEKENDS = "WEEKENDS"
    HOLIDAYS = "HOLIDAYS"
    WAITING_CUSTOMER = "WAITING_CUSTOMER"
    CUSTOMER_HOLD = "CUSTOMER_HOLD"


class PriorityScope(str, enum.Enum):
    ALL = "ALL"
    P1_P2 = "P1_P2"
    P1_ONLY = "P1_ONLY"


class ClockState(str, enum.Enum):
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"


class NotificationKind(str, enum.Enum):
    WARNING_RESPONSE = "WARNING_RESPONSE"
    WARNING_RESOLUTION = "WARNING_RESOLUTION"
    BREACH_RESPONSE = "BREACH_RESPONSE"
    BREACH_RESOLUTION = "BREACH_RESOLUTION"


class ActorType(str, enum.Enum):
    user = "user"
    system = "system"


class AuthorType(str, enum.Enum):
    agent = "agent"
    customer = "customer"


class SlaState(str, enum.Enum):
    NONE = "NONE"
    ACTIVE = "ACTIVE"
    RESPONSE_BREACHED = "RESPONSE_BREACHED"
    RESOLUTION_BREACHED = "RESOLUTION_BREACHED"
