"""Immutable read models the engine computes over.

They are built from the ORM rows once per ticket (``contract_service``) and
serialised into ``SlaTracking.config_snapshot`` so a tracking keeps the
configuration it was created with.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any

from sla_engine.models.base import (
    CoverageLevel,
    HolidaySupportLevel,
    PauseCondition,
    PriorityScope,
    TicketPriority,
)

DEFAULT_WORK_DAYS = frozenset({1, 2, 3, 4, 5})


@dataclass(frozen=True)
class ShiftConfig:
    name: str
    start_time: time
    end_time: time
    timezone: str = "UTC"
    break_minutes: int = 0
    is_active: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "timezone": self.timezone,
            "break_minutes": self.break_minutes,
            "is_active": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ShiftConfig":
        return cls(
            name=data["name"],
            start_time=time.fromisoformat(data["start_time"]),
            end_time=time.fromisoformat(data["end_time"]),
            timezone=data.get("timezone", "UTC"),
            break_minutes=data.get("break_minutes", 0),
            is_active=data.get("is_active", True),
        )


@dataclass(frozen=True)
class SupportTypeConfig:
    """Coverage model. ``work_days`` uses 0 = Sunday ... 6 = Saturday."""

    name: str
    work_days: frozenset[int] = DEFAULT_WORK_DAYS
    daily_hours: int = 9
    weekend_coverage: CoverageLevel = CoverageLevel.NONE
    holiday_coverage: CoverageLevel = CoverageLevel.NONE
    on_call_priorities: frozenset[TicketPriority] = frozenset()
    pause_conditions: frozenset[PauseCondition] = frozenset()
    priority_scope: PriorityScope = PriorityScope.ALL
    sla_enabled: dict[TicketPriority, bool] = field(default_factory=dict)

    def is_enabled_for(self, priority: TicketPriority) -> bool:
        return self.sla_enabled.get(priority, True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "work_days": sorted(self.work_days),
            "daily_hours": self.daily_hours,
            "weekend_coverage": self.weekend_coverage.value,
            "holiday_coverage": self.holiday_coverage.value,
            "on_call_priorities": sorted(p.value for p in self.on_call_priorities),
            "pause_conditions": sorted(c.value for c in self.pause_conditions),
            "priority_scope": self.priority_scope.value,
            "sla_enabled": {p.value: enabled for p, enabled in self.sla_enabled.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SupportTypeConfig":
        return cls(
            name=data["name"],
            work_days=frozenset(data.get("work_days", DEFAULT_WORK_DAYS)),
            daily_hours=data.get("daily_hours", 9),
            weekend_coverage=CoverageLevel(data.get("weekend_coverage", "NONE")),
            holiday_coverage=CoverageLevel(data.get("holiday_coverage", "NONE")),
            on_call_priorities=frozenset(
                TicketPriority(p) for p in data.get("on_call_priorities", [])
            ),
            pause_conditions=frozenset(
                PauseCondition(c) for c in data.get("pause_conditions", [])
            ),
            priority_scope=PriorityScope(data.get("priority_scope", "ALL")),
            sla_enabled={
                TicketPriority(p): bool(enabled)
                for p, enabled in (data.get("sla_enabled") or {}).items()
            },
        )


@dataclass(frozen=True)
class HolidayConfig:
    holiday_date: date
    name: str
    support_level: HolidaySupportLevel = HolidaySupportLevel.NONE

    def to_dict(self) -> dict[str, Any]:
        return {
            "holiday_date": self.holiday_date.isoformat(),
            "name": self.name,
            "support_level": self.support_level.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HolidayConfig":
        return cls(
            holiday_date=date.fromisoformat(data["holiday_date"]),
            name=data["name"],
            support_level=HolidaySupportLevel(data.get("support_level", "NONE")),
        )


@dataclass(frozen=True)
class PolicyTargetConfig:
    priority: TicketPriority
    response_minutes: int
    resolution_minutes: int
    enabled: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "priority": self.priority.value,
            "response_minutes": self.response_minutes,
            "resolution_minutes": self.resolution_minutes,
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PolicyTargetConfig":
        return cls(
            priority=TicketPriority(data["priority"]),
            response_minutes=data["response_minutes"],
            resolution_minutes=data["resolution_minutes"],
            enabled=data.get("enabled", True),
        )


@dataclass(frozen=True)
class SlaPolicyConfig:
    name: str
    warning_threshold: float | None = None
    targets: tuple[PolicyTargetConfig, ...] = ()

    def target_for(self, priority: TicketPriority) -> PolicyTargetConfig | None:
        for target in self.targets:
            if target.priority == priority:
                return target
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "warning_threshold": self.warning_threshold,
            "targets": [t.to_dict() for t in self.targets],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SlaPolicyConfig":
        return cls(
            name=data["name"],
            warning_threshold=data.get("warning_threshold"),
            targets=tuple(PolicyTargetConfig.from_dict(t) for t in data.get("targets", [])),
        )


@dataclass(frozen=True)
class ContractConfig:
    """Everything the engine needs to know about one contract."""

    contract_number: str
    support_type: SupportTypeConfig | None = None
    sla_policy: SlaPolicyConfig | None = None
    shifts: tuple[ShiftConfig, ...] = ()
    holidays: tuple[HolidayConfig, ...] = ()

    @property
    def active_shifts(self) -> tuple[ShiftConfig, ...]:
        return tuple(s for s in self.shifts if s.is_active)

    def to_dict(self) -> dict[str, Any]:
        return {
            "contract_number": self.contract_number,
            "support_type": self.support_type.to_dict() if self.support_type else None,
            "sla_policy": self.sla_policy.to_dict() if self.sla_policy else None,
            "shifts": [s.to_dict() for s in self.shifts],
            "holidays": [h.to_dict() for h in self.holidays],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ContractConfig":
        support_type = data.get("support_type")
        sla_policy = data.get("sla_policy")
        return cls(
            contract_number=data["contract_number"],
            support_type=SupportTypeConfig.from_dict(support_type) if support_type else None,
            sla_policy=SlaPolicyConfig.from_dict(sla_policy) if sla_policy else None,
            shifts=tuple(ShiftConfig.from_dict(s) for s in data.get("shifts", [])),
            holidays=tuple(HolidayConfig.from_dict(h) for h in data.get("holidays", [])),
        )


@dataclass(frozen=True)
class CoverageWindow:
    """Half-open UTC interval ``[start, end)`` at one coverage level."""

    start: datetime
    end: datetime
    level: CoverageLevel

    @property
    def minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)


@dataclass(frozen=True)
class DaySchedule:
    day: date
    is_work_day: bool
    coverage: CoverageLevel
    windows: tuple[CoverageWindow, ...] = ()
    holiday_name: str | None = None
    holiday_level: HolidaySupportLevel | None = None

    @property
    def is_holiday(self) -> bool:
        return self.holiday_level is not None

    @property
    def covered_minutes(self) -> int:
        return sum(w.minutes for w in self.windows)


@dataclass(frozen=True)
class SlaTargets:
    response_minutes: int
    resolution_minutes: int
    warning_threshold: float
    on_call: bool = False
    enabled: bool = True
