import uuid
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel

from sla_engine.models.base import (
    ClockState,
    CoverageLevel,
    HolidaySupportLevel,
    NotificationKind,
    PauseCondition,
    SlaState,
    TicketPriority,
)


class SlaStatusResponse(BaseModel):
    """SLA read projection. Only ``state`` is set when the ticket has no SLA."""

    state: SlaState
    tracking_id: uuid.UUID | None = None
    priority: TicketPriority | None = None
    clock_state: ClockState | None = None
    pause_reason: PauseCondition | None = None
    started_at: datetime | None = None
    response_deadline: datetime | None = None
    resolution_deadline: datetime | None = None
    responded_at: datetime | None = None
    resolved_at: datetime | None = None
    response_minutes: int | None = None
    resolution_minutes: int | None = None
    elapsed_minutes: int | None = None
    paused_minutes: int | None = None
    response_remaining_minutes: int | None = None
    resolution_remaining_minutes: int | None = None
    response_percentage: float | None = None
    resolution_percentage: float | None = None
    breach_response: bool = False
    breach_resolution: bool = False
    warning_response_sent: bool = False
    warning_resolution_sent: bool = False


class PauseHistoryResponse(BaseModel):
    id: uuid.UUID
    tracking_id: uuid.UUID
    paused_at: datetime
    resumed_at: datetime | None
    reason: PauseCondition
    business_minutes: int | None

    model_config = {"from_attributes": True}


class CoverageWindowResponse(BaseModel):
    start: datetime
    end: datetime
    level: CoverageLevel

    model_config = {"from_attributes": True}


class DayScheduleResponse(BaseModel):
    day: date
    is_work_day: bool
    is_holiday: bool
    holiday_name: str | None = None
    holiday_level: HolidaySupportLevel | None = None
    coverage: CoverageLevel
    covered_minutes: int
    windows: list[CoverageWindowResponse]

    model_config = {"from_attributes": True}


class NotificationIntentResponse(BaseModel):
    id: uuid.UUID
    tracking_id: uuid.UUID
    ticket_id: uuid.UUID
    tenant_id: uuid.UUID
    kind: NotificationKind
    record_snapshot: dict[str, Any]
    created_at: datetime
    dispatched_at: datetime | None
    attempts: int
    last_error: str | None
    next_attempt_at: datetime | None = None

    model_config = {"from_attributes": True}


class SweepResponse(BaseModel):
    evaluated: int
    failed: int
    intents_created: int
    delivered: int
