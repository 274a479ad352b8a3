from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from sla_engine.engine.business_time import add_business_minutes, elapsed_business_minutes
from sla_engine.engine.calendar import BusinessCalendar
from sla_engine.engine.errors import UnreachableDeadlineError
from sla_engine.engine.types import ShiftConfig
from sla_engine.models.base import CoverageLevel
from tests.conftest import build_config

IST = ZoneInfo("Asia/Kolkata")


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def office_hours() -> BusinessCalendar:
    """Monday to Friday, 09:00-17:00 UTC."""
    return BusinessCalendar(build_config())


def test_add_within_same_day(office_hours):
    assert add_business_minutes(utc(2026, 10, 19, 10), 60, office_hours) == utc(2026, 10, 19, 11)


def test_add_rolls_over_to_next_day(office_hours):
    assert add_business_minutes(utc(2026, 10, 19, 16), 120, office_hours) == utc(2026, 10, 20, 10)


def test_add_from_outside_hours_starts_at_next_window(office_hours):
    saturday = utc(2026, 10, 24, 12)
    assert add_business_minutes(saturday, 60, office_hours) == utc(2026, 10, 26, 10)


def test_add_ending_exactly_at_window_close(office_hours):
    assert add_business_minutes(utc(2026, 10, 19, 9), 480, office_hours) == utc(2026, 10, 19, 17)


def test_zero_budget_returns_start(office_hours):
    start = utc(2026, 10, 24, 3, 15)
    assert add_business_minutes(start, 0, office_hours) == start


def test_negative_budget_is_rejected(office_hours):
    with pytest.raises(ValueError):
        add_business_minutes(utc(2026, 10, 19, 10), -1, office_hours)


def test_friday_afternoon_in_kolkata_lands_on_monday():
    config = build_config(shifts=(ShiftConfig("IST", time(9, 0), time(18, 0), "Asia/Kolkata"),))
    calendar = BusinessCalendar(config)
    start = datetime(2026, 10, 23, 16, 0, tzinfo=IST)

    deadline = add_business_minutes(start, 240, calendar)

    assert deadline.astimezone(IST) == datetime(2026, 10, 26, 11, 0, tzinfo=IST)
    assert elapsed_business_minutes(start, deadline, calendar) == 240


def test_round_trip(office_hours):
    start = utc(2026, 10, 19, 13, 37)
    for budget in (1, 59, 480, 1000, 2400):
        deadline = add_business_minutes(start, budget, office_hours)
        assert elapsed_business_minutes(start, deadline, office_hours) == budget


def test_elapsed_is_monotonic(office_hours):
    start = utc(2026, 10, 19, 8)
    previous = 0
    for hour in range(0, 24 * 8, 3):
        current = elapsed_business_minutes(start, start + timedelta(hours=hour), office_hours)
        assert current >= previous
        previous = current
    assert previous == 5 * 480


@pytest.mark.parametrize(
    "shifts, start",
    [
        # Friday afternoon, so budgets run across the window close and the weekend.
        ((ShiftConfig("Day", time(9, 0), time(17, 0)),), utc(2026, 10, 23, 15, 30)),
        # Night shift crossing midnight, starting just before it opens.
        ((ShiftConfig("Night", time(22, 0), time(6, 0)),), utc(2026, 10, 23, 21, 0)),
        ((ShiftConfig("IST", time(9, 0), time(18, 0), "Asia/Kolkata"),), utc(2026, 10, 23, 11, 45)),
    ],
    ids=["day", "night", "kolkata"],
)
def test_deadline_is_monotonic_in_budget(shifts, start):
    calendar = BusinessCalendar(build_config(shifts=shifts))
    previous = start
    for budget in range(0, 1500, 7):
        deadline = add_business_minutes(start, budget, calendar)
        assert deadline >= previous
        previous = deadline
    assert previous > start + timedelta(days=2)


def test_elapsed_truncates_partial_minutes(office_hours):
    start = utc(2026, 10, 19, 9)
    assert elapsed_business_minutes(start, start + timedelta(seconds=59), office_hours) == 0
    assert elapsed_business_minutes(start, start + timedelta(seconds=90), office_hours) == 1


def test_elapsed_is_zero_for_reversed_range(office_hours):
    assert elapsed_business_minutes(utc(2026, 10, 19, 12), utc(2026, 10, 19, 10), office_hours) == 0


def test_elapsed_skips_weekend(office_hours):
    assert elapsed_business_minutes(utc(2026, 10, 23, 16), utc(2026, 10, 26, 10), office_hours) == 120


def test_on_call_weekend_counts_only_for_on_call():
    calendar = BusinessCalendar(build_config(weekend_coverage=CoverageLevel.ON_CALL))
    start, end = utc(2026, 10, 24, 9), utc(2026, 10, 24, 17)
    assert elapsed_business_minutes(start, end, calendar) == 0
    assert elapsed_business_minutes(start, end, calendar, on_call=True) == 480


def test_unreachable_deadline():
    calendar = BusinessCalendar(build_config(work_days=()), lookahead_days=30)
    with pytest.raises(UnreachableDeadlineError) as exc_info:
        add_business_minutes(utc(2026, 10, 19, 10), 60, calendar)
    assert exc_info.value.budget_minutes == 60
    assert exc_info.value.lookahead_days == 30


def test_naive_datetimes_are_rejected(office_hours):
    with pytest.raises(ValueError):
        add_business_minutes(datetime(2026, 10, 19, 10), 60, office_hours)
    with pytest.raises(ValueError):
        elapsed_business_minutes(utc(2026, 10, 19, 10), datetime(2026, 10, 19, 12), office_hours)
