from datetime import datetime, timezone

import pytest

from sla_engine.engine.calendar import BusinessCalendar
from sla_engine.engine.errors import PauseSequenceError
from sla_engine.engine.pause import (
    PauseInterval,
    close_pause,
    effective_elapsed_minutes,
    evaluate_clock,
    fold_paused_minutes,
    open_pause,
    shifted_deadline,
    threshold_minutes,
)
from sla_engine.models.base import ClockState, PauseCondition, TicketStatus
from tests.conftest import build_config


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def calendar() -> BusinessCalendar:
    return BusinessCalendar(build_config())


# ---------------------------------------------------------------------------
# Clock state
# ---------------------------------------------------------------------------


def test_status_pause_applies_only_when_configured(calendar):
    during_hours = utc(2026, 10, 19, 10)
    paused = evaluate_clock(
        during_hours, calendar, TicketStatus.PENDING, {PauseCondition.WAITING_CUSTOMER}
    )
    assert paused.state == ClockState.PAUSED
    assert paused.reason == PauseCondition.WAITING_CUSTOMER

    running = evaluate_clock(during_hours, calendar, TicketStatus.PENDING, set())
    assert not running.paused


def test_status_pause_takes_precedence_over_calendar(calendar):
    saturday = utc(2026, 10, 24, 12)
    decision = evaluate_clock(
        saturday,
        calendar,
        TicketStatus.ON_HOLD,
        {PauseCondition.CUSTOMER_HOLD, PauseCondition.WEEKENDS},
    )
    assert decision.reason == PauseCondition.CUSTOMER_HOLD


def test_calendar_pause_reason(calendar):
    evening = utc(2026, 10, 19, 20)
    decision = evaluate_clock(
        evening, calendar, TicketStatus.OPEN, {PauseCondition.OUTSIDE_BUSINESS_HOURS}
    )
    assert decision.reason == PauseCondition.OUTSIDE_BUSINESS_HOURS

    unconfigured = evaluate_clock(evening, calendar, TicketStatus.OPEN, set())
    assert unconfigured.state == ClockState.RUNNING


# ---------------------------------------------------------------------------
# Pause / resume sequencing
# ---------------------------------------------------------------------------


def test_open_pause_twice_is_rejected():
    with pytest.raises(PauseSequenceError):
        open_pause(utc(2026, 10, 19, 10), None, utc(2026, 10, 19, 11))


def test_open_pause_before_last_resume_is_rejected():
    with pytest.raises(PauseSequenceError):
        open_pause(None, utc(2026, 10, 19, 12), utc(2026, 10, 19, 11))


def test_resume_without_pause_is_rejected(calendar):
    with pytest.raises(PauseSequenceError):
        close_pause(None, None, utc(2026, 10, 19, 11), calendar, 0)


def test_resume_before_pause_is_rejected(calendar):
    with pytest.raises(PauseSequenceError):
        close_pause(
            utc(2026, 10, 19, 12),
            PauseCondition.WAITING_CUSTOMER,
            utc(2026, 10, 19, 11),
            calendar,
            0,
        )


def test_zero_length_pause_adds_nothing(calendar):
    at = utc(2026, 10, 19, 12)
    assert close_pause(at, PauseCondition.WAITING_CUSTOMER, at, calendar, 30) == (0, 30)


def test_status_pause_counts_business_minutes(calendar):
    minutes, total = close_pause(
        utc(2026, 10, 19, 16),
        PauseCondition.WAITING_CUSTOMER,
        utc(2026, 10, 20, 10),
        calendar,
        15,
    )
    assert minutes == 120
    assert total == 135


def test_calendar_pause_counts_nothing(calendar):
    minutes, total = close_pause(
        utc(2026, 10, 23, 17),
        PauseCondition.WEEKENDS,
        utc(2026, 10, 26, 9),
        calendar,
        40,
    )
    assert (minutes, total) == (0, 40)


def test_fold_ignores_open_interval():
    history = [
        PauseInterval(utc(2026, 10, 19, 10), utc(2026, 10, 19, 11), 60),
        PauseInterval(utc(2026, 10, 19, 12), utc(2026, 10, 19, 12), 0),
        PauseInterval(utc(2026, 10, 19, 14), None, None),
    ]
    assert fold_paused_minutes(history) == 60


# ---------------------------------------------------------------------------
# Deadlines and warnings
# ---------------------------------------------------------------------------


def test_paused_minutes_push_deadline(calendar):
    start = utc(2026, 10, 19, 9)
    assert shifted_deadline(start, 240, 0, calendar) == utc(2026, 10, 19, 13)
    assert shifted_deadline(start, 240, 120, calendar) == utc(2026, 10, 19, 15)


def test_effective_elapsed_stops_at_status_pause(calendar):
    start = utc(2026, 10, 19, 9)
    now = utc(2026, 10, 19, 15)
    paused_at = utc(2026, 10, 19, 12)
    assert effective_elapsed_minutes(
        start, now, paused_at, PauseCondition.WAITING_CUSTOMER, 30, calendar
    ) == 150
    assert effective_elapsed_minutes(start, now, None, None, 30, calendar) == 330


@pytest.mark.parametrize(
    "budget, threshold, expected",
    [(480, 0.8, 384), (100, 0.7, 70), (15, 0.8, 12), (7, 0.5, 4), (60, 1.0, 60)],
)
def test_threshold_minutes(budget, threshold, expected):
    assert threshold_minutes(budget, threshold) == expected
