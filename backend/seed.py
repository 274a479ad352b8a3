"""Seed script for demo data. Run with: python seed.py [--if-empty]"""
import argparse
import asyncio
import uuid
from datetime import date, time

from sqlalchemy import select

from sla_engine.config import settings
from sla_engine.database import async_session
from sla_engine.models import Contract, SupportType
from sla_engine.models.base import (
    CoverageLevel,
    HolidaySupportLevel,
    PauseCondition,
    PriorityScope,
    TicketPriority,
)
from sla_engine.services import contract_service

P1, P2, P3, P4 = TicketPriority.P1, TicketPriority.P2, TicketPriority.P3, TicketPriority.P4
MON_FRI = [1, 2, 3, 4, 5]
MON_SAT = [1, 2, 3, 4, 5, 6]

SUPPORT_TYPES = [
    {
        "name": "Basic",
        "code": "BASIC",
        "work_days": MON_FRI,
        "weekend_coverage": CoverageLevel.NONE,
        "holiday_coverage": CoverageLevel.NONE,
        "pause_conditions": [
            PauseCondition.OUTSIDE_BUSINESS_HOURS,
            PauseCondition.WEEKENDS,
            PauseCondition.HOLIDAYS,
        ],
    },
    {
        "name": "Basic Plus",
        "code": "BASIC_PLUS",
        "work_days": MON_FRI,
        "weekend_coverage": CoverageLevel.ON_CALL,
        "holiday_coverage": CoverageLevel.ON_CALL,
        "on_call_priorities": [P1],
        "pause_conditions": [PauseCondition.OUTSIDE_BUSINESS_HOURS, PauseCondition.WEEKENDS],
    },
    {
        "name": "Extended",
        "code": "EXTENDED",
        "work_days": MON_SAT,
        "daily_hours": 12,
        "weekend_coverage": CoverageLevel.NONE,
        "holiday_coverage": CoverageLevel.NONE,
        "pause_conditions": [PauseCondition.OUTSIDE_BUSINESS_HOURS, PauseCondition.HOLIDAYS],
    },
    {
        "name": "Extended Plus",
        "code": "EXTENDED_PLUS",
        "work_days": MON_SAT,
        "daily_hours": 12,
        "weekend_coverage": CoverageLevel.ON_CALL,
        "holiday_coverage": CoverageLevel.ON_CALL,
        "on_call_priorities": [P1, P2],
        "pause_conditions": [
            PauseCondition.OUTSIDE_BUSINESS_HOURS,
            PauseCondition.WAITING_CUSTOMER,
        ],
    },
    {
        "name": "On-Call",
        "code": "ON_CALL",
        "work_days": [0, 1, 2, 3, 4, 5, 6],
        "daily_hours": 24,
        "weekend_coverage": CoverageLevel.ON_CALL,
        "holiday_coverage": CoverageLevel.ON_CALL,
        "on_call_priorities": [P1],
        "priority_scope": PriorityScope.P1_ONLY,
    },
]

SLA_POLICIES = [
    {
        "name": "Gold",
        "code": "GOLD",
        "targets": {P1: (15, 240), P2: (60, 480), P3: (240, 1440), P4: (480, 2880)},
    },
    {
        "name": "Silver",
        "code": "SILVER",
        "targets": {P1: (30, 480), P2: (120, 960), P3: (480, 2880), P4: (960, 5760)},
    },
    {
        "name": "Bronze",
        "code": "BRONZE",
        "targets": {P1: (60, 960), P2: (240, 1920), P3: (960, 5760), P4: (1920, 11520)},
    },
]

US_HOLIDAYS_2026 = [
    (date(2026, 1, 1), "New Year's Day", HolidaySupportLevel.NONE),
    (date(2026, 5, 25), "Memorial Day", HolidaySupportLevel.EMERGENCY_ONLY),
    (date(2026, 7, 3), "Independence Day (observed)", HolidaySupportLevel.EMERGENCY_ONLY),
    (date(2026, 9, 7), "Labor Day", HolidaySupportLevel.EMERGENCY_ONLY),
    (date(2026, 11, 26), "Thanksgiving Day", HolidaySupportLevel.NONE),
    (date(2026, 12, 25), "Christmas Day", HolidaySupportLevel.NONE),
]


async def seed(if_empty: bool = False):
    tenant_id = uuid.UUID(settings.default_tenant_id)
    async with async_session() as db:
        existing = await db.execute(select(SupportType.id).limit(1))
        if existing.scalar_one_or_none() is not None:
            if if_empty:
                print("Database already seeded. Skipping.")
                return
            print("Support types already present; adding another demo set.")

        support_types = {}
        for s in SUPPORT_TYPES:
            row = await contract_service.create_support_type(db, tenant_id=tenant_id, **s)
            support_types[row.code] = row

        policies = {}
        for p in SLA_POLICIES:
            row = await contract_service.create_sla_policy(db, tenant_id=tenant_id, **p)
            policies[row.code] = row

        business_day = await contract_service.create_shift(
            db,
            tenant_id=tenant_id,
            name="Business Day",
            start_time=time(9, 0),
            end_time=time(18, 0),
            timezone="America/New_York",
            break_minutes=60,
        )
        holidays = await contract_service.create_holiday_calendar(
            db,
            tenant_id=tenant_id,
            name="US Federal Holidays 2026",
            dates=US_HOLIDAYS_2026,
            country="US",
            year=2026,
        )

        count = await db.execute(select(Contract.id))
        contract = await contract_service.create_contract(
            db,
            tenant_id=tenant_id,
            contract_number=f"CT-DEMO-{len(count.all()) + 1:03d}",
            customer_name="Acme Manufacturing",
            support_type=support_types["BASIC_PLUS"],
            sla_policy=policies["GOLD"],
            shifts=[business_day],
            holiday_calendars=[holidays],
        )

        await db.commit()

        print("=" * 60)
        print("Seed data created successfully!")
        print(f"Support types: {', '.join(support_types)}")
        print(f"SLA policies: {', '.join(policies)}")
        print(f"Demo contract: {contract.contract_number} ({contract.id})")
        print("=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--if-empty", action="store_true", help="Only seed if database is empty")
    args = parser.parse_args()
    asyncio.run(seed(if_empty=args.if_empty))
