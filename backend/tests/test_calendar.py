from datetime import date, datetime, time, timezone

import pytest

from sla_engine.engine.calendar import (
    BusinessCalendar,
    coverage_for,
    merge_intervals,
    resolve_calendar,
    weekday_number,
)
from sla_engine.engine.errors import SlaConfigurationError
from sla_engine.engine.types import ShiftConfig, SupportTypeConfig
from sla_engine.models.base import CoverageLevel, HolidaySupportLevel, PauseCondition
from tests.conftest import ALL_DAYS, build_config, holiday

MONDAY = date(2026, 10, 19)
TUESDAY = date(2026, 10, 20)
SATURDAY = date(2026, 10, 24)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Day classification
# ---------------------------------------------------------------------------


def test_weekday_number_starts_on_sunday():
    assert weekday_number(date(2026, 10, 18)) == 0
    assert weekday_number(MONDAY) == 1
    assert weekday_number(SATURDAY) == 6


@pytest.mark.parametrize(
    "holiday_level, holiday_coverage, expected",
    [
        (HolidaySupportLevel.FULL, CoverageLevel.NONE, CoverageLevel.FULL),
        (HolidaySupportLevel.NONE, CoverageLevel.FULL, CoverageLevel.NONE),
        (HolidaySupportLevel.EMERGENCY_ONLY, CoverageLevel.NONE, CoverageLevel.NONE),
        (HolidaySupportLevel.EMERGENCY_ONLY, CoverageLevel.ON_CALL, CoverageLevel.ON_CALL),
        (HolidaySupportLevel.EMERGENCY_ONLY, CoverageLevel.FULL, CoverageLevel.ON_CALL),
    ],
)
def test_holiday_level_overrides_support_type(holiday_level, holiday_coverage, expected):
    support_type = SupportTypeConfig(name="t", holiday_coverage=holiday_coverage)
    assert coverage_for(support_type, True, holiday_level) == expected


def test_non_work_day_uses_weekend_coverage():
    support_type = SupportTypeConfig(name="t", weekend_coverage=CoverageLevel.ON_CALL)
    assert coverage_for(support_type, False, None) == CoverageLevel.ON_CALL
    assert coverage_for(support_type, True, None) == CoverageLevel.FULL


def test_work_day_shift_window_in_utc():
    calendar = BusinessCalendar(build_config())
    day = calendar.day(MONDAY)
    assert day.is_work_day
    assert day.coverage == CoverageLevel.FULL
    assert [(w.start, w.end) for w in day.windows] == [(utc(2026, 10, 19, 9), utc(2026, 10, 19, 17))]
    assert day.covered_minutes == 480


def test_weekend_without_coverage_has_no_windows():
    day = BusinessCalendar(build_config()).day(SATURDAY)
    assert not day.is_work_day
    assert day.coverage == CoverageLevel.NONE
    assert day.windows == ()


def test_break_is_taken_from_middle_of_shift():
    config = build_config(shifts=(ShiftConfig("Day", time(9, 0), time(18, 0), break_minutes=60),))
    day = BusinessCalendar(config).day(MONDAY)
    assert [(w.start, w.end) for w in day.windows] == [
        (utc(2026, 10, 19, 9), utc(2026, 10, 19, 13)),
        (utc(2026, 10, 19, 14), utc(2026, 10, 19, 18)),
    ]
    assert day.covered_minutes == 480


def test_midnight_crossing_shift_stays_on_its_date():
    config = build_config(shifts=(ShiftConfig("Night", time(22, 0), time(6, 0)),))
    day = BusinessCalendar(config).day(MONDAY)
    assert [(w.start, w.end) for w in day.windows] == [
        (utc(2026, 10, 19, 0), utc(2026, 10, 19, 6)),
        (utc(2026, 10, 19, 22), utc(2026, 10, 20, 0)),
    ]


def test_equal_start_and_end_is_a_full_day_shift():
    config = build_config(shifts=(ShiftConfig("All day", time(0, 0), time(0, 0)),))
    assert BusinessCalendar(config).day(MONDAY).covered_minutes == 1440


def test_no_shifts_means_round_the_clock():
    day = BusinessCalendar(build_config(shifts=())).day(MONDAY)
    assert [(w.start, w.end) for w in day.windows] == [(utc(2026, 10, 19), utc(2026, 10, 20))]


def test_shift_timezone_is_converted_to_utc():
    config = build_config(shifts=(ShiftConfig("IST", time(9, 0), time(17, 0), "Asia/Kolkata"),))
    day = BusinessCalendar(config).day(MONDAY)
    assert [(w.start, w.end) for w in day.windows] == [
        (utc(2026, 10, 19, 3, 30), utc(2026, 10, 19, 11, 30)),
    ]


def test_dst_change_moves_utc_window():
    config = build_config(
        shifts=(ShiftConfig("NY", time(9, 0), time(17, 0), "America/New_York"),)
    )
    calendar = BusinessCalendar(config)
    friday = calendar.day(date(2026, 10, 30))
    monday = calendar.day(date(2026, 11, 2))
    assert friday.windows[0].start == utc(2026, 10, 30, 13)
    assert monday.windows[0].start == utc(2026, 11, 2, 14)
    assert friday.covered_minutes == monday.covered_minutes == 480


def test_overlapping_shifts_are_merged():
    config = build_config(
        shifts=(
            ShiftConfig("Early", time(9, 0), time(13, 0)),
            ShiftConfig("Late", time(12, 0), time(17, 0)),
        )
    )
    day = BusinessCalendar(config).day(MONDAY)
    assert len(day.windows) == 1
    assert day.covered_minutes == 480


def test_inactive_shift_is_ignored():
    config = build_config(
        shifts=(
            ShiftConfig("Day", time(9, 0), time(17, 0)),
            ShiftConfig("Evening", time(17, 0), time(21, 0), is_active=False),
        )
    )
    assert BusinessCalendar(config).day(MONDAY).covered_minutes == 480


def test_unknown_timezone_is_a_configuration_error():
    config = build_config(shifts=(ShiftConfig("Bad", time(9, 0), time(17, 0), "Mars/Olympus"),))
    with pytest.raises(SlaConfigurationError):
        BusinessCalendar(config)


# ---------------------------------------------------------------------------
# Holidays
# ---------------------------------------------------------------------------


def test_holiday_without_support_closes_the_day():
    config = build_config(holidays=[holiday(TUESDAY, name="Founders Day")])
    day = BusinessCalendar(config).day(TUESDAY)
    assert day.is_holiday
    assert day.holiday_name == "Founders Day"
    assert day.coverage == CoverageLevel.NONE
    assert day.windows == ()


def test_lowest_holiday_level_wins_across_calendars():
    config = build_config(
        holidays=[
            holiday(TUESDAY, HolidaySupportLevel.FULL, "Regional"),
            holiday(TUESDAY, HolidaySupportLevel.NONE, "National"),
        ]
    )
    day = BusinessCalendar(config).day(TUESDAY)
    assert day.holiday_level == HolidaySupportLevel.NONE
    assert day.holiday_name == "National"


def test_emergency_holiday_counts_only_for_on_call():
    config = build_config(
        holiday_coverage=CoverageLevel.ON_CALL,
        holidays=[holiday(TUESDAY, HolidaySupportLevel.EMERGENCY_ONLY)],
    )
    calendar = BusinessCalendar(config)
    noon = utc(2026, 10, 20, 12)
    assert calendar.day(TUESDAY).coverage == CoverageLevel.ON_CALL
    assert not calendar.is_counting(noon)
    assert calendar.is_counting(noon, on_call=True)


def test_full_support_holiday_on_weekend_opens_the_day():
    config = build_config(holidays=[holiday(SATURDAY, HolidaySupportLevel.FULL)])
    day = BusinessCalendar(config).day(SATURDAY)
    assert day.coverage == CoverageLevel.FULL
    assert day.covered_minutes == 480


# ---------------------------------------------------------------------------
# Instants and windows
# ---------------------------------------------------------------------------


def test_is_counting_window_is_half_open():
    calendar = BusinessCalendar(build_config())
    assert calendar.is_counting(utc(2026, 10, 19, 9))
    assert calendar.is_counting(utc(2026, 10, 19, 16, 59))
    assert not calendar.is_counting(utc(2026, 10, 19, 17))
    assert not calendar.is_counting(utc(2026, 10, 19, 8, 59))


def test_weekend_on_call_counts_only_for_on_call_tickets():
    calendar = BusinessCalendar(build_config(weekend_coverage=CoverageLevel.ON_CALL))
    saturday_noon = utc(2026, 10, 24, 12)
    assert not calendar.is_counting(saturday_noon)
    assert calendar.is_counting(saturday_noon, on_call=True)


def test_non_counting_reason():
    config = build_config(holidays=[holiday(TUESDAY)])
    calendar = BusinessCalendar(config)
    assert calendar.non_counting_reason(utc(2026, 10, 19, 20)) == PauseCondition.OUTSIDE_BUSINESS_HOURS
    assert calendar.non_counting_reason(utc(2026, 10, 20, 12)) == PauseCondition.HOLIDAYS
    assert calendar.non_counting_reason(utc(2026, 10, 24, 12)) == PauseCondition.WEEKENDS


def test_naive_instant_is_rejected():
    calendar = BusinessCalendar(build_config())
    with pytest.raises(ValueError):
        calendar.is_counting(datetime(2026, 10, 19, 10))


def test_counting_windows_are_clipped_to_range():
    calendar = BusinessCalendar(build_config())
    windows = list(
        calendar.counting_windows(utc(2026, 10, 19, 12), until=utc(2026, 10, 20, 10))
    )
    assert windows == [
        (utc(2026, 10, 19, 12), utc(2026, 10, 19, 17)),
        (utc(2026, 10, 20, 9), utc(2026, 10, 20, 10)),
    ]


def test_counting_windows_are_ordered_and_disjoint():
    calendar = BusinessCalendar(build_config(work_days=ALL_DAYS, shifts=()), lookahead_days=10)
    windows = list(calendar.counting_windows(utc(2026, 10, 19, 10)))
    assert windows[0][0] == utc(2026, 10, 19, 10)
    for (_, prev_end), (start, end) in zip(windows, windows[1:]):
        assert prev_end <= start < end


def test_empty_range_yields_nothing():
    calendar = BusinessCalendar(build_config())
    start = utc(2026, 10, 19, 10)
    assert list(calendar.counting_windows(start, until=start)) == []


def test_merge_intervals_joins_touching_ranges():
    a, b, c = utc(2026, 1, 1, 9), utc(2026, 1, 1, 12), utc(2026, 1, 1, 15)
    assert merge_intervals([(b, c), (a, b)]) == [(a, c)]


def test_resolve_calendar_returns_one_entry_per_date():
    days = resolve_calendar(build_config(), MONDAY, date(2026, 10, 25))
    assert [d.day for d in days][0] == MONDAY
    assert len(days) == 7
    assert sum(d.covered_minutes for d in days) == 5 * 480


def test_resolve_rejects_reversed_range():
    with pytest.raises(ValueError):
        resolve_calendar(build_config(), TUESDAY, MONDAY)
