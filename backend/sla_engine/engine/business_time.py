"""Business-minute arithmetic over a :class:`BusinessCalendar`.

Both operations are pure: the calendar is the only input besides the
arguments, and sub-minute remainders are truncated.
"""
from datetime import datetime, timedelta

from sla_engine.engine.calendar import BusinessCalendar, require_aware
from sla_engine.engine.errors import UnreachableDeadlineError


def elapsed_business_minutes(
    start: datetime,
    end: datetime,
    calendar: BusinessCalendar,
    on_call: bool = False,
) -> int:
    """Covered minutes in ``[start, end)``. Zero when ``end <= start``."""
    require_aware(start, "start")
    require_aware(end, "end")
    if end <= start:
        return 0
    total = timedelta(0)
    for s, e in calendar.counting_windows(start, on_call=on_call, until=end):
        total += e - s
    return int(total.total_seconds() // 60)


def add_business_minutes(
    start: datetime,
    budget_minutes: int,
    calendar: BusinessCalendar,
    on_call: bool = False,
) -> datetime:
    """Instant at which ``budget_minutes`` of covered time after ``start`` are used up."""
    require_aware(start, "start")
    if budget_minutes < 0:
        raise ValueError("budget_minutes must not be negative")
    if budget_minutes == 0:
        return start

    remaining = timedelta(minutes=budget_minutes)
    for s, e in calendar.counting_windows(start, on_call=on_call):
        available = e - s
        if remaining <= available:
            return s + remaining
        remaining -= available
    raise UnreachableDeadlineError(start, budget_minutes, calendar.lookahead_days)
