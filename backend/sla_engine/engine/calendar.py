from collections.abc import Iterable, Iterator
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sla_engine.engine.errors import SlaConfigurationError
from sla_engine.engine.types import (
    ContractConfig,
    CoverageWindow,
    DaySchedule,
    HolidayConfig,
    ShiftConfig,
    SupportTypeConfig,
)
from sla_engine.models.base import CoverageLevel, HolidaySupportLevel, PauseCondition


DEFAULT_LOOKAHEAD_DAYS = 730

# No IANA zone is further ahead of UTC than this, so windows of any later
# local date start at or after ``next UTC midnight - _MAX_UTC_OFFSET``.
_MAX_UTC_OFFSET = timedelta(hours=14)

# Lower rank wins when two attached calendars list the same date.
_HOLIDAY_RANK = {
    HolidaySupportLevel.NONE: 0,
    HolidaySupportLevel.EMERGENCY_ONLY: 1,
    HolidaySupportLevel.FULL: 2,
}

Interval = tuple[datetime, datetime]


def weekday_number(day: date) -> int:
    """0 = Sunday ... 6 = Saturday, the numbering support types use."""
    return day.isoweekday() % 7


def require_aware(value: datetime, name: str = "instant") -> None:
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware, got {value!r}")


def coverage_for(
    support_type: SupportTypeConfig,
    is_work_day: bool,
    holiday_level: HolidaySupportLevel | None,
) -> CoverageLevel:
    """Effective coverage of one date. A holiday's own level overrides the defaults."""
    if holiday_level is not None:
        if holiday_level == HolidaySupportLevel.FULL:
            return CoverageLevel.FULL
        if holiday_level == HolidaySupportLevel.NONE:
            return CoverageLevel.NONE
        if holiday_level == HolidaySupportLevel.EMERGENCY_ONLY:
            if support_type.holiday_coverage == CoverageLevel.NONE:
                return CoverageLevel.NONE
            return CoverageLevel.ON_CALL
        raise ValueError(f"Unhandled holiday support level: {holiday_level!r}")
    if not is_work_day:
        return support_type.weekend_coverage
    return CoverageLevel.FULL


def counts(level: CoverageLevel, on_call: bool) -> bool:
    if level == CoverageLevel.FULL:
        return True
    if level == CoverageLevel.ON_CALL:
        return on_call
    return False


def merge_intervals(intervals: Iterable[Interval]) -> list[Interval]:
    merged: list[Interval] = []
    for start, end in sorted(intervals):
        if merged and start <= merged[-1][1]:
            if end > merged[-1][1]:
                merged[-1] = (merged[-1][0], end)
        else:
            merged.append((start, end))
    return merged


def _index_holidays(holidays: Iterable[HolidayConfig]) -> dict[date, HolidayConfig]:
    index: dict[date, HolidayConfig] = {}
    for holiday in holidays:
        current = index.get(holiday.holiday_date)
        if current is None or _HOLIDAY_RANK[holiday.support_level] < _HOLIDAY_RANK[current.support_level]:
            index[holiday.holiday_date] = holiday
    return index


def _local_shift_pieces(shift: ShiftConfig, day: date) -> list[tuple[datetime, datetime]]:
    """Naive local intervals of ``shift`` that fall on ``day``.

    A shift crossing midnight contributes ``[00:00, end)`` and ``[start, 24:00)``
    of the same date. The break is taken from the middle of the shift.
    """
    start = datetime.combine(day, shift.start_time)
    end = datetime.combine(day, shift.end_time)
    if end <= start:
        end += timedelta(days=1)
    length = end - start
    brk = min(timedelta(minutes=max(shift.break_minutes, 0)), length)
    if brk:
        offset = (length - brk) // 2
        pieces = [(start, start + offset), (start + offset + brk, end)]
    else:
        pieces = [(start, end)]

    day_end = datetime.combine(day + timedelta(days=1), time.min)
    result = []
    for s, e in pieces:
        if s < day_end:
            result.append((s, min(e, day_end)))
        if e > day_end:
            result.append((max(s, day_end) - timedelta(days=1), e - timedelta(days=1)))
    return [(s, e) for s, e in result if e > s]


class BusinessCalendar:
    """Resolved coverage for one contract, extended lazily one date at a time."""

    def __init__(self, config: ContractConfig, lookahead_days: int = DEFAULT_LOOKAHEAD_DAYS):
        self.config = config
        self.support_type = config.support_type or SupportTypeConfig(name="default")
        self.lookahead_days = lookahead_days
        self._holidays = _index_holidays(config.holidays)
        self._shifts: list[tuple[ShiftConfig, ZoneInfo]] = []
        for shift in config.active_shifts:
            try:
                self._shifts.append((shift, ZoneInfo(shift.timezone)))
            except (ZoneInfoNotFoundError, ValueError) as exc:
                raise SlaConfigurationError(
                    f"Shift {shift.name!r} has unknown timezone {shift.timezone!r}"
                ) from exc
        self.timezone = self._shifts[0][1] if self._shifts else ZoneInfo("UTC")
        self._days: dict[date, DaySchedule] = {}

    def day(self, day: date) -> DaySchedule:
        schedule = self._days.get(day)
        if schedule is None:
            schedule = self._resolve_day(day)
            self._days[day] = schedule
        return schedule

    def resolve(self, start_date: date, end_date: date) -> list[DaySchedule]:
        if end_date < start_date:
            raise ValueError("end_date must not be before start_date")
        span = (end_date - start_date).days
        return [self.day(start_date + timedelta(days=i)) for i in range(span + 1)]

    def _resolve_day(self, day: date) -> DaySchedule:
        is_work_day = weekday_number(day) in self.support_type.work_days
        holiday = self._holidays.get(day)
        holiday_level = holiday.support_level if holiday else None
        coverage = coverage_for(self.support_type, is_work_day, holiday_level)

        windows: tuple[CoverageWindow, ...] = ()
        if coverage != CoverageLevel.NONE:
            intervals: list[Interval] = []
            if self._shifts:
                for shift, zone in self._shifts:
                    for s, e in _local_shift_pieces(shift, day):
                        utc_start = s.replace(tzinfo=zone).astimezone(timezone.utc)
                        utc_end = e.replace(tzinfo=zone).astimezone(timezone.utc)
                        if utc_end > utc_start:
                            intervals.append((utc_start, utc_end))
            else:
                # No shift configured: round-the-clock coverage.
                midnight = datetime.combine(day, time.min, tzinfo=timezone.utc)
                intervals.append((midnight, midnight + timedelta(days=1)))
            windows = tuple(
                CoverageWindow(start=s, end=e, level=coverage) for s, e in merge_intervals(intervals)
            )

        return DaySchedule(
            day=day,
            is_work_day=is_work_day,
            coverage=coverage,
            windows=windows,
            holiday_name=holiday.name if holiday else None,
            holiday_level=holiday_level,
        )

    def local_date(self, at: datetime) -> date:
        require_aware(at)
        return at.astimezone(self.timezone).date()

    def is_counting(self, at: datetime, on_call: bool = False) -> bool:
        """Whether the SLA clock advances at instant ``at``."""
        require_aware(at)
        utc_day = at.astimezone(timezone.utc).date()
        for offset in (-1, 0, 1):
            for window in self.day(utc_day + timedelta(days=offset)).windows:
                if counts(window.level, on_call) and window.start <= at < window.end:
                    return True
        return False

    def non_counting_reason(self, at: datetime) -> PauseCondition:
        """Classify an uncovered instant in the contract's primary timezone."""
        schedule = self.day(self.local_date(at))
        if schedule.is_holiday and schedule.coverage != CoverageLevel.FULL:
            return PauseCondition.HOLIDAYS
        if not schedule.is_work_day and schedule.coverage != CoverageLevel.FULL:
            return PauseCondition.WEEKENDS
        return PauseCondition.OUTSIDE_BUSINESS_HOURS

    def counting_windows(
        self,
        start: datetime,
        on_call: bool = False,
        until: datetime | None = None,
    ) -> Iterator[Interval]:
        """Yield disjoint, ordered UTC intervals during which the clock runs.

        Intervals are clipped to ``[start, until)``. Without ``until`` the walk
        stops ``lookahead_days`` after ``start``. A long covered stretch may be
        yielded as several adjacent pieces.
        """
        require_aware(start, "start")
        start = start.astimezone(timezone.utc)
        if until is not None:
            require_aware(until, "until")
            until = until.astimezone(timezone.utc)
            if until <= start:
                return

        day = start.date() - timedelta(days=1)
        last_day = start.date() + timedelta(days=self.lookahead_days)
        pending: list[Interval] = []
        while True:
            for window in self.day(day).windows:
                if counts(window.level, on_call):
                    pending.append((window.start, window.end))
            pending = merge_intervals(pending)

            frontier = datetime.combine(
                day + timedelta(days=1), time.min, tzinfo=timezone.utc
            ) - _MAX_UTC_OFFSET
            if until is not None:
                exhausted = frontier >= until
            else:
                exhausted = day >= last_day

            if exhausted:
                ready, pending = pending, []
            else:
                ready, rest = [], []
                for s, e in pending:
                    if e <= frontier:
                        ready.append((s, e))
                    elif s < frontier:
                        ready.append((s, frontier))
                        rest.append((frontier, e))
                    else:
                        rest.append((s, e))
                pending = rest

            for s, e in ready:
                s = max(s, start)
                if until is not None:
                    e = min(e, until)
                if s < e:
                    yield s, e

            if exhausted:
                return
            day += timedelta(days=1)


def resolve_calendar(
    config: ContractConfig,
    start_date: date,
    end_date: date,
) -> list[DaySchedule]:
    """One ``DaySchedule`` per date in ``[start_date, end_date]``."""
    return BusinessCalendar(config).resolve(start_date, end_date)
