import uuid
from datetime import date, time

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from sla_engine.engine.calendar import BusinessCalendar
from sla_engine.engine.errors import SlaConfigurationError
from sla_engine.engine.types import (
    ContractConfig,
    DaySchedule,
    HolidayConfig,
    PolicyTargetConfig,
    ShiftConfig,
    SlaPolicyConfig,
    SupportTypeConfig,
)
from sla_engine.models.base import (
    CoverageLevel,
    HolidaySupportLevel,
    PauseCondition,
    PriorityScope,
    TicketPriority,
)
from sla_engine.models.contract import Contract
from sla_engine.models.holiday import HolidayCalendar, HolidayDate
from sla_engine.models.shift import Shift
from sla_engine.models.sla_policy import SlaPolicy, SlaPolicyTarget
from sla_engine.models.support_type import SupportType

MAX_CALENDAR_DAYS = 366

_CONTRACT_LOAD_OPTIONS = [
    selectinload(Contract.support_type),
    selectinload(Contract.sla_policy).selectinload(SlaPolicy.targets),
    selectinload(Contract.shifts),
    selectinload(Contract.holiday_calendars).selectinload(HolidayCalendar.dates),
]


# ---------------------------------------------------------------------------
# Read models
# ---------------------------------------------------------------------------

def _support_type_config(row: SupportType) -> SupportTypeConfig:
    return SupportTypeConfig(
        name=row.name,
        work_days=frozenset(row.work_days or []),
        daily_hours=row.daily_hours,
        weekend_coverage=row.weekend_coverage,
        holiday_coverage=row.holiday_coverage,
        on_call_priorities=frozenset(TicketPriority(p) for p in row.on_call_priorities or []),
        pause_conditions=frozenset(PauseCondition(c) for c in row.pause_conditions or []),
        priority_scope=row.priority_scope,
        sla_enabled={TicketPriority(p): bool(v) for p, v in (row.sla_enabled or {}).items()},
    )


def _policy_config(row: SlaPolicy) -> SlaPolicyConfig:
    return SlaPolicyConfig(
        name=row.name,
        warning_threshold=row.warning_threshold,
        targets=tuple(
            PolicyTargetConfig(
                priority=t.priority,
                response_minutes=t.response_minutes,
                resolution_minutes=t.resolution_minutes,
                enabled=t.enabled,
            )
            for t in sorted(row.targets, key=lambda t: t.priority.value)
        ),
    )


def build_config(contract: Contract) -> ContractConfig:
    """Snapshot a fully loaded contract into the engine's read model."""
    support_type = contract.support_type
    if support_type is not None and not support_type.is_active:
        support_type = None
    holidays = tuple(
        HolidayConfig(holiday_date=d.holiday_date, name=d.name, support_level=d.support_level)
        for cal in contract.holiday_calendars
        if cal.is_active
        for d in sorted(cal.dates, key=lambda d: d.holiday_date)
    )
    shifts = tuple(
        ShiftConfig(
            name=s.name,
            start_time=s.start_time,
            end_time=s.end_time,
            timezone=s.timezone,
            break_minutes=s.break_minutes,
            is_active=s.is_active,
        )
        for s in sorted(contract.shifts, key=lambda s: (s.start_time, s.name))
    )
    return ContractConfig(
        contract_number=contract.contract_number,
        support_type=_support_type_config(support_type) if support_type else None,
        sla_policy=_policy_config(contract.sla_policy) if contract.sla_policy else None,
        shifts=shifts,
        holidays=holidays,
    )


async def get_contract(db: AsyncSession, contract_id: uuid.UUID) -> Contract:
    result = await db.execute(
        select(Contract)
        .where(Contract.id == contract_id)
        .options(*_CONTRACT_LOAD_OPTIONS)
        .execution_options(populate_existing=True)
    )
    contract = result.scalar_one_or_none()
    if contract is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Contract not found",
        )
    return contract


async def load_contract_config(db: AsyncSession, contract_id: uuid.UUID) -> ContractConfig:
    return build_config(await get_contract(db, contract_id))


async def get_calendar(
    db: AsyncSession,
    contract_id: uuid.UUID,
    start_date: date,
    end_date: date,
) -> list[DaySchedule]:
    """Resolved schedule of a contract for an inclusive date range."""
    if end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="end must not be before start",
        )
    if (end_date - start_date).days >= MAX_CALENDAR_DAYS:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Date range is limited to {MAX_CALENDAR_DAYS} days",
        )
    config = await load_contract_config(db, contract_id)
    try:
        calendar = BusinessCalendar(config)
    except SlaConfigurationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc
    return calendar.resolve(start_date, end_date)


# ---------------------------------------------------------------------------
# Master data (seed script and tests)
# ---------------------------------------------------------------------------

async def create_support_type(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    name: str,
    code: str,
    work_days: list[int] | None = None,
    daily_hours: int = 9,
    weekend_coverage: CoverageLevel = CoverageLevel.NONE,
    holiday_coverage: CoverageLevel = CoverageLevel.NONE,
    on_call_priorities: list[TicketPriority] | None = None,
    pause_conditions: list[PauseCondition] | None = None,
    priority_scope: PriorityScope = PriorityScope.ALL,
    sla_enabled: dict[TicketPriority, bool] | None = None,
) -> SupportType:
    enabled = {p.value: True for p in TicketPriority}
    for priority, flag in (sla_enabled or {}).items():
        enabled[TicketPriority(priority).value] = flag
    support_type = SupportType(
        tenant_id=tenant_id,
        name=name,
        code=code,
        work_days=sorted(work_days) if work_days is not None else [1, 2, 3, 4, 5],
        daily_hours=daily_hours,
        weekend_coverage=weekend_coverage,
        holiday_coverage=holiday_coverage,
        on_call_priorities=[TicketPriority(p).value for p in on_call_priorities or []],
        pause_conditions=[PauseCondition(c).value for c in pause_conditions or []],
        priority_scope=priority_scope,
        sla_enabled=enabled,
    )
    db.add(support_type)
    await db.flush()
    return support_type


async def create_shift(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    name: str,
    start_time: time,
    end_time: time,
    timezone: str = "UTC",
    break_minutes: int = 0,
) -> Shift:
    shift = Shift(
        tenant_id=tenant_id,
        name=name,
        start_time=start_time,
        end_time=end_time,
        timezone=timezone,
        break_minutes=break_minutes,
    )
    db.add(shift)
    await db.flush()
    return shift


async def create_holiday_calendar(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    name: str,
    dates: list[tuple[date, str, HolidaySupportLevel]],
    country: str | None = None,
    year: int | None = None,
) -> HolidayCalendar:
    calendar = HolidayCalendar(tenant_id=tenant_id, name=name, country=country, year=year)
    db.add(calendar)
    await db.flush()
    for holiday_date, holiday_name, level in dates:
        db.add(
            HolidayDate(
                calendar_id=calendar.id,
                holiday_date=holiday_date,
                name=holiday_name,
                support_level=level,
            )
        )
    await db.flush()
    return calendar


async def create_sla_policy(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    name: str,
    code: str,
    targets: dict[TicketPriority, tuple[int, int]],
    warning_threshold: float | None = 0.80,
) -> SlaPolicy:
    """``targets`` maps priority to ``(response_minutes, resolution_minutes)``."""
    policy = SlaPolicy(
        tenant_id=tenant_id, name=name, code=code, warning_threshold=warning_threshold
    )
    db.add(policy)
    await db.flush()
    for priority, (response_minutes, resolution_minutes) in targets.items():
        db.add(
            SlaPolicyTarget(
                policy_id=policy.id,
                priority=priority,
                response_minutes=response_minutes,
                resolution_minutes=resolution_minutes,
            )
        )
    await db.flush()
    return policy


async def create_contract(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    contract_number: str,
    customer_name: str,
    support_type: SupportType | None = None,
    sla_policy: SlaPolicy | None = None,
    shifts: list[Shift] | None = None,
    holiday_calendars: list[HolidayCalendar] | None = None,
) -> Contract:
    contract = Contract(
        tenant_id=tenant_id,
        contract_number=contract_number,
        customer_name=customer_name,
        support_type_id=support_type.id if support_type else None,
        sla_policy_id=sla_policy.id if sla_policy else None,
        shifts=list(shifts or []),
        holiday_calendars=list(holiday_calendars or []),
    )
    db.add(contract)
    await db.flush()
    return contract
