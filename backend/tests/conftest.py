import collections
import itertools
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import date, time

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from sla_engine.config import settings
from sla_engine.database import get_db
from sla_engine.engine.types import (
    ContractConfig,
    HolidayConfig,
    PolicyTargetConfig,
    ShiftConfig,
    SlaPolicyConfig,
    SupportTypeConfig,
)
from sla_engine.main import create_app
from sla_engine.models import Base, Contract
from sla_engine.models.base import (
    CoverageLevel,
    HolidaySupportLevel,
    PriorityScope,
    TicketPriority,
)
from sla_engine.services import contract_service
from sla_engine.tasks import sla_checker

TENANT_ID = uuid.UUID(settings.default_tenant_id)
ALL_DAYS = (0, 1, 2, 3, 4, 5, 6)
MON_FRI = (1, 2, 3, 4, 5)

GOLD_TARGETS = {
    TicketPriority.P1: (15, 240),
    TicketPriority.P2: (60, 480),
    TicketPriority.P3: (240, 1440),
    TicketPriority.P4: (480, 2880),
}

_contract_numbers = itertools.count(1)


@pytest.fixture
async def engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # SQLite has no sequences; stand in for ticket_number_seq with a per-database counter.
    @event.listens_for(engine.sync_engine, "connect")
    def _register_nextval(dbapi_connection, connection_record):
        counters = collections.defaultdict(lambda: itertools.count(1))
        dbapi_connection.create_function("nextval", 1, lambda name: next(counters[name]))

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db(engine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a test database session."""
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def sweep_session(db: AsyncSession, monkeypatch):
    """Point the SLA sweep at the test session instead of its own."""

    @asynccontextmanager
    async def _test_session():
        yield db

    monkeypatch.setattr(sla_checker, "async_session", _test_session)
    monkeypatch.setattr(settings, "notification_backoff_seconds", 0)
    return _test_session


@pytest.fixture
async def client(db: AsyncSession, sweep_session) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client wired to the FastAPI app with test DB override."""
    app = create_app()

    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac


@pytest.fixture
def make_contract(db: AsyncSession):
    """Factory for a committed contract with one support type, policy and shift set.

    ``shifts`` is a sequence of ``(start, end, timezone)``; pass ``()`` for
    round-the-clock coverage. ``holidays`` is a sequence of
    ``(date, name, HolidaySupportLevel)``.
    """

    async def _make(
        work_days=MON_FRI,
        shifts=((time(9, 0), time(17, 0), "UTC"),),
        weekend_coverage: CoverageLevel = CoverageLevel.NONE,
        holiday_coverage: CoverageLevel = CoverageLevel.NONE,
        pause_conditions=(),
        on_call_priorities=(),
        priority_scope: PriorityScope = PriorityScope.ALL,
        holidays=(),
        targets=None,
        warning_threshold: float | None = 0.80,
    ) -> Contract:
        support_type = await contract_service.create_support_type(
            db,
            tenant_id=TENANT_ID,
            name="Test Support",
            code="TEST",
            work_days=list(work_days),
            weekend_coverage=weekend_coverage,
            holiday_coverage=holiday_coverage,
            on_call_priorities=list(on_call_priorities),
            pause_conditions=list(pause_conditions),
            priority_scope=priority_scope,
        )
        policy = await contract_service.create_sla_policy(
            db,
            tenant_id=TENANT_ID,
            name="Gold",
            code="GOLD",
            targets=targets or GOLD_TARGETS,
            warning_threshold=warning_threshold,
        )
        shift_rows = [
            await contract_service.create_shift(
                db, tenant_id=TENANT_ID, name=f"Shift {i}", start_time=s, end_time=e, timezone=tz
            )
            for i, (s, e, tz) in enumerate(shifts)
        ]
        calendars = []
        if holidays:
            calendars.append(
                await contract_service.create_holiday_calendar(
                    db, tenant_id=TENANT_ID, name="Holidays", dates=list(holidays)
                )
            )
        contract = await contract_service.create_contract(
            db,
            tenant_id=TENANT_ID,
            contract_number=f"CT-{next(_contract_numbers):05d}",
            customer_name="Acme",
            support_type=support_type,
            sla_policy=policy,
            shifts=shift_rows,
            holiday_calendars=calendars,
        )
        await db.commit()
        return contract

    return _make


def build_config(
    work_days=MON_FRI,
    shifts=(ShiftConfig("Day", time(9, 0), time(17, 0)),),
    weekend_coverage: CoverageLevel = CoverageLevel.NONE,
    holiday_coverage: CoverageLevel = CoverageLevel.NONE,
    pause_conditions=(),
    on_call_priorities=(),
    priority_scope: PriorityScope = PriorityScope.ALL,
    holidays=(),
    targets=None,
    warning_threshold: float | None = 0.80,
) -> ContractConfig:
    """In-memory contract configuration for engine-level tests."""
    targets = targets or GOLD_TARGETS
    return ContractConfig(
        contract_number="CT-TEST",
        support_type=SupportTypeConfig(
            name="Test Support",
            work_days=frozenset(work_days),
            weekend_coverage=weekend_coverage,
            holiday_coverage=holiday_coverage,
            on_call_priorities=frozenset(on_call_priorities),
            pause_conditions=frozenset(pause_conditions),
            priority_scope=priority_scope,
        ),
        sla_policy=SlaPolicyConfig(
            name="Gold",
            warning_threshold=warning_threshold,
            targets=tuple(
                PolicyTargetConfig(priority=p, response_minutes=r, resolution_minutes=s)
                for p, (r, s) in targets.items()
            ),
        ),
        shifts=tuple(shifts),
        holidays=tuple(
            HolidayConfig(holiday_date=d, name=n, support_level=level) for d, n, level in holidays
        ),
    )


def holiday(day: date, level: HolidaySupportLevel = HolidaySupportLevel.NONE, name="Holiday"):
    return (day, name, level)
