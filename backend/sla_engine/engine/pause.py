"""SLA clock pause bookkeeping.

The clock state is a function of (instant, calendar, ticket status); there is
no live timer. Status pauses (waiting on customer, customer hold) remove their
business minutes from the countdown. Calendar pauses (weekends, holidays,
off-hours) are recorded for audit only: uncovered time never counts, so they
contribute zero minutes.
"""
import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from sla_engine.engine.business_time import add_business_minutes, elapsed_business_minutes
from sla_engine.engine.calendar import BusinessCalendar
from sla_engine.engine.errors import PauseSequenceError
from sla_engine.models.base import ClockState, PauseCondition, TicketStatus

STATUS_PAUSE_REASONS = {
    TicketStatus.PENDING: PauseCondition.WAITING_CUSTOMER,
    TicketStatus.ON_HOLD: PauseCondition.CUSTOMER_HOLD,
}

STATUS_REASONS = frozenset(STATUS_PAUSE_REASONS.values())


@dataclass(frozen=True)
class ClockDecision:
    state: ClockState
    reason: PauseCondition | None = None

    @property
    def paused(self) -> bool:
        return self.state == ClockState.PAUSED


RUNNING = ClockDecision(ClockState.RUNNING)


@dataclass(frozen=True)
class PauseInterval:
    paused_at: datetime
    resumed_at: datetime | None
    business_minutes: int | None


def is_status_reason(reason: PauseCondition | None) -> bool:
    return reason in STATUS_REASONS


def evaluate_clock(
    at: datetime,
    calendar: BusinessCalendar,
    status: TicketStatus,
    conditions: Iterable[PauseCondition],
    on_call: bool = False,
) -> ClockDecision:
    conditions = frozenset(conditions)
    status_reason = STATUS_PAUSE_REASONS.get(status)
    if status_reason is not None and status_reason in conditions:
        return ClockDecision(ClockState.PAUSED, status_reason)

    if calendar.is_counting(at, on_call):
        return RUNNING
    reason = calendar.non_counting_reason(at)
    if reason in conditions:
        return ClockDecision(ClockState.PAUSED, reason)
    return RUNNING


def open_pause(
    current_paused_at: datetime | None,
    last_resumed_at: datetime | None,
    at: datetime,
) -> None:
    """Validate that a pause may start at ``at``."""
    if current_paused_at is not None:
        raise PauseSequenceError(f"Clock already paused since {current_paused_at.isoformat()}")
    if last_resumed_at is not None and at < last_resumed_at:
        raise PauseSequenceError(
            f"Pause at {at.isoformat()} precedes last resume at {last_resumed_at.isoformat()}"
        )


def close_pause(
    paused_at: datetime | None,
    reason: PauseCondition | None,
    at: datetime,
    calendar: BusinessCalendar,
    paused_minutes: int,
    on_call: bool = False,
) -> tuple[int, int]:
    """Close the open pause at ``at``.

    Returns ``(minutes of this pause, new paused_minutes total)``.
    """
    if paused_at is None:
        raise PauseSequenceError("Resume without an open pause")
    if at < paused_at:
        raise PauseSequenceError(
            f"Resume at {at.isoformat()} precedes pause at {paused_at.isoformat()}"
        )
    if is_status_reason(reason):
        minutes = elapsed_business_minutes(paused_at, at, calendar, on_call)
    else:
        minutes = 0
    return minutes, paused_minutes + minutes


def fold_paused_minutes(history: Iterable[PauseInterval]) -> int:
    """Rebuild ``paused_minutes`` from the pause log. Open intervals count zero."""
    return sum(p.business_minutes or 0 for p in history if p.resumed_at is not None)


def shifted_deadline(
    started_at: datetime,
    budget_minutes: int,
    paused_minutes: int,
    calendar: BusinessCalendar,
    on_call: bool = False,
) -> datetime:
    return add_business_minutes(started_at, budget_minutes + paused_minutes, calendar, on_call)


def effective_elapsed_minutes(
    started_at: datetime,
    at: datetime,
    paused_at: datetime | None,
    reason: PauseCondition | None,
    paused_minutes: int,
    calendar: BusinessCalendar,
    on_call: bool = False,
) -> int:
    """Business minutes consumed from the budget as of ``at``."""
    end = paused_at if paused_at is not None and is_status_reason(reason) else at
    return max(0, elapsed_business_minutes(started_at, end, calendar, on_call) - paused_minutes)


def threshold_minutes(budget_minutes: int, threshold: float) -> int:
    return math.ceil(round(budget_minutes * threshold, 6))
