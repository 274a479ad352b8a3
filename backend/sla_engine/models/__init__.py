from sla_engine.models.audit_log import AuditLog
from sla_engine.models.base import (
    ActorType,
    AuthorType,
    Base,
    ClockState,
    SlaState,
    CoverageLevel,
    HolidaySupportLevel,
    NotificationKind,
    PauseCondition,
    PriorityScope,
    TicketPriority,
    TicketStatus,
    TimestampMixin,
)
from sla_engine.models.contract import Contract
from sla_engine.models.holiday import HolidayCalendar, HolidayDate
from sla_engine.models.notification import NotificationIntent
from sla_engine.models.shift import Shift
from sla_engine.models.sla_policy import SlaPolicy, SlaPolicyTarget
from sla_engine.models.sla_tracking import SlaPauseHistory, SlaTracking
from sla_engine.models.support_type import SupportType
from sla_engine.models.ticket import Ticket
from sla_engine.models.ticket_note import TicketNote

__all__ = [
    "AuditLog",
    "ActorType",
    "AuthorType",
    "Base",
    "ClockState",
    "SlaState",
    "CoverageLevel",
    "HolidaySupportLevel",
    "NotificationKind",
    "PauseCondition",
    "PriorityScope",
    "TicketPriority",
    "TicketStatus",
    "TimestampMixin",
    "Contract",
    "HolidayCalendar",
    "HolidayDate",
    "NotificationIntent",
    "Shift",
    "SlaPolicy",
    "SlaPolicyTarget",
    "SlaPauseHistory",
    "SlaTracking",
    "SupportType",
    "Ticket",
    "TicketNote",
]
