"""SLA tracking state machine.

Every function takes the evaluation instant explicitly. Mutating functions
lock the tracking row (``SELECT ... FOR UPDATE``) and rely on the
``version`` column to detect lost updates; callers own the transaction.
"""
import logging
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sla_engine.config import settings
from sla_engine.engine.business_time import add_business_minutes
from sla_engine.engine.calendar import BusinessCalendar
from sla_engine.engine.errors import SlaConfigurationError
from sla_engine.engine.pause import (
    PauseInterval,
    close_pause,
    effective_elapsed_minutes,
    evaluate_clock,
    fold_paused_minutes,
    is_status_reason,
    open_pause,
    shifted_deadline,
    threshold_minutes,
)
from sla_engine.engine.targets import resolve_targets
from sla_engine.engine.types import ContractConfig
from sla_engine.models.base import (
    ActorType,
    ClockState,
    NotificationKind,
    PauseCondition,
    SlaState,
    TicketStatus,
)
from sla_engine.models.notification import NotificationIntent
from sla_engine.models.sla_tracking import SlaPauseHistory, SlaTracking
from sla_engine.models.ticket import Ticket
from sla_engine.services import audit_service

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset(
    {TicketStatus.RESOLVED, TicketStatus.CLOSED, TicketStatus.CANCELLED}
)
# Moving a ticket into one of these counts as the first agent response.
RESPONSE_STATUSES = frozenset(
    {TicketStatus.IN_PROGRESS, TicketStatus.PENDING, TicketStatus.RESOLVED, TicketStatus.CLOSED}
)

# (sub-SLA, warning kind, breach kind)
_SUB_SLAS = (
    ("response", NotificationKind.WARNING_RESPONSE, NotificationKind.BREACH_RESPONSE),
    ("resolution", NotificationKind.WARNING_RESOLUTION, NotificationKind.BREACH_RESOLUTION),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def calendar_for(tracking: SlaTracking) -> BusinessCalendar:
    """Calendar built from the configuration snapshot taken at creation."""
    return BusinessCalendar(
        ContractConfig.from_dict(tracking.config_snapshot),
        lookahead_days=settings.sla_lookahead_days,
    )


def tracking_snapshot(tracking: SlaTracking) -> dict[str, Any]:
    def _iso(value: datetime | None) -> str | None:
        return value.isoformat() if value is not None else None

    return {
        "tracking_id": str(tracking.id),
        "ticket_id": str(tracking.ticket_id),
        "tenant_id": str(tracking.tenant_id),
        "priority": tracking.priority.value,
        "started_at": _iso(tracking.started_at),
        "response_deadline": _iso(tracking.response_deadline),
        "resolution_deadline": _iso(tracking.resolution_deadline),
        "responded_at": _iso(tracking.responded_at),
        "breach_response": tracking.breach_response,
        "breach_resolution": tracking.breach_resolution,
        "paused_minutes": tracking.paused_minutes,
    }


async def get_tracking(
    db: AsyncSession,
    ticket_id: uuid.UUID,
    for_update: bool = False,
) -> SlaTracking | None:
    query = select(SlaTracking).where(SlaTracking.ticket_id == ticket_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def list_pauses(db: AsyncSession, tracking_id: uuid.UUID) -> list[SlaPauseHistory]:
    result = await db.execute(
        select(SlaPauseHistory)
        .where(SlaPauseHistory.tracking_id == tracking_id)
        .order_by(SlaPauseHistory.paused_at.asc())
    )
    return list(result.scalars().all())


def _add_intent(
    db: AsyncSession,
    tracking: SlaTracking,
    kind: NotificationKind,
    at: datetime,
) -> NotificationIntent:
    snapshot = tracking_snapshot(tracking)
    snapshot["kind"] = kind.value
    snapshot["evaluated_at"] = at.isoformat()
    intent = NotificationIntent(
        id=uuid.uuid4(),
        tracking_id=tracking.id,
        ticket_id=tracking.ticket_id,
        tenant_id=tracking.tenant_id,
        kind=kind,
        record_snapshot=snapshot,
        attempts=0,
    )
    db.add(intent)
    return intent


def _recompute_deadlines(tracking: SlaTracking, calendar: BusinessCalendar) -> None:
    resolution = shifted_deadline(
        tracking.started_at,
        tracking.resolution_minutes,
        tracking.paused_minutes,
        calendar,
        tracking.on_call,
    )
    if tracking.responded_at is None:
        response = shifted_deadline(
            tracking.started_at,
            tracking.response_minutes,
            tracking.paused_minutes,
            calendar,
            tracking.on_call,
        )
    else:
        # Frozen once answered; clamped so it never passes the resolution deadline.
        response = min(tracking.response_deadline, resolution)
    tracking.response_deadline = response
    tracking.resolution_deadline = resolution


async def _open_pause(
    db: AsyncSession,
    tracking: SlaTracking,
    reason: PauseCondition,
    at: datetime,
) -> None:
    result = await db.execute(
        select(SlaPauseHistory.resumed_at)
        .where(
            SlaPauseHistory.tracking_id == tracking.id,
            SlaPauseHistory.resumed_at.isnot(None),
        )
        .order_by(SlaPauseHistory.resumed_at.desc())
        .limit(1)
    )
    open_pause(tracking.paused_at, result.scalar_one_or_none(), at)

    tracking.paused_at = at
    tracking.pause_reason = reason
    db.add(SlaPauseHistory(tracking_id=tracking.id, paused_at=at, reason=reason))
    logger.info("SLA clock paused for ticket %s (%s)", tracking.ticket_id, reason.value)


async def _close_pause(
    db: AsyncSession,
    tracking: SlaTracking,
    at: datetime,
    calendar: BusinessCalendar,
) -> None:
    minutes, total = close_pause(
        tracking.paused_at,
        tracking.pause_reason,
        at,
        calendar,
        tracking.paused_minutes,
        tracking.on_call,
    )
    result = await db.execute(
        select(SlaPauseHistory)
        .where(
            SlaPauseHistory.tracking_id == tracking.id,
            SlaPauseHistory.resumed_at.is_(None),
        )
        .order_by(SlaPauseHistory.paused_at.desc())
        .limit(1)
    )
    row = result.scalar_one_or_none()
    if row is not None:
        row.resumed_at = at
        row.business_minutes = minutes
    else:
        logger.warning("No open pause history row for tracking %s", tracking.id)

    tracking.paused_minutes = total
    tracking.paused_at = None
    tracking.pause_reason = None
    _recompute_deadlines(tracking, calendar)
    logger.info(
        "SLA clock resumed for ticket %s after %d business minutes",
        tracking.ticket_id,
        minutes,
    )


async def _apply_clock(
    db: AsyncSession,
    tracking: SlaTracking,
    status: TicketStatus,
    at: datetime,
    calendar: BusinessCalendar,
) -> None:
    decision = evaluate_clock(
        at,
        calendar,
        status,
        calendar.support_type.pause_conditions,
        tracking.on_call,
    )
    if tracking.paused_at is not None:
        if decision.paused and decision.reason == tracking.pause_reason:
            return
        await _close_pause(db, tracking, at, calendar)
    if decision.paused:
        await _open_pause(db, tracking, decision.reason, at)


async def _mark_response(
    db: AsyncSession,
    tracking: SlaTracking,
    at: datetime,
) -> list[NotificationIntent]:
    tracking.responded_at = at
    # While a status pause is open the budget stopped being consumed at paused_at.
    status_paused = tracking.paused_at is not None and is_status_reason(tracking.pause_reason)
    reference = tracking.paused_at if status_paused else at
    intents = []
    if reference > tracking.response_deadline and not tracking.breach_response:
        tracking.breach_response = True
        intents.append(_add_intent(db, tracking, NotificationKind.BREACH_RESPONSE, at))
        await _log_breach(db, tracking, "response", at)
    return intents


async def _log_breach(db: AsyncSession, tracking: SlaTracking, sub_sla: str, at: datetime) -> None:
    deadline = getattr(tracking, f"{sub_sla}_deadline")
    logger.warning(
        "SLA %s breached for ticket %s (deadline %s)",
        sub_sla,
        tracking.ticket_id,
        deadline.isoformat(),
    )
    await audit_service.log_action(
        db=db,
        ticket_id=tracking.ticket_id,
        actor_type=ActorType.system,
        actor_name="sla-engine",
        action="sla_breached",
        field_changed=f"breach_{sub_sla}",
        old_value="false",
        new_value="true",
        metadata={"deadline": deadline.isoformat(), "evaluated_at": at.isoformat()},
    )


async def _settle(
    db: AsyncSession,
    tracking: SlaTracking,
    at: datetime,
    calendar: BusinessCalendar,
) -> list[NotificationIntent]:
    """Flip breach flags and fire warnings as of ``at``. Flags never go back."""
    status_paused = tracking.paused_at is not None and is_status_reason(tracking.pause_reason)
    reference = tracking.paused_at if status_paused else at
    elapsed: int | None = None
    intents: list[NotificationIntent] = []

    for sub_sla, warning_kind, breach_kind in _SUB_SLAS:
        if sub_sla == "response" and tracking.responded_at is not None:
            continue
        if getattr(tracking, f"breach_{sub_sla}"):
            continue

        if reference > getattr(tracking, f"{sub_sla}_deadline"):
            setattr(tracking, f"breach_{sub_sla}", True)
            intents.append(_add_intent(db, tracking, breach_kind, at))
            await _log_breach(db, tracking, sub_sla, at)
            continue

        if getattr(tracking, f"warning_{sub_sla}_sent"):
            continue
        if elapsed is None:
            elapsed = effective_elapsed_minutes(
                tracking.started_at,
                at,
                tracking.paused_at,
                tracking.pause_reason,
                tracking.paused_minutes,
                calendar,
                tracking.on_call,
            )
        budget = getattr(tracking, f"{sub_sla}_minutes")
        if elapsed >= threshold_minutes(budget, tracking.warning_threshold):
            setattr(tracking, f"warning_{sub_sla}_sent", True)
            intents.append(_add_intent(db, tracking, warning_kind, at))
            logger.info(
                "SLA %s warning for ticket %s (%d of %d minutes used)",
                sub_sla,
                tracking.ticket_id,
                elapsed,
                budget,
            )
    return intents


async def _freeze(
    db: AsyncSession,
    tracking: SlaTracking,
    at: datetime,
    calendar: BusinessCalendar,
) -> list[NotificationIntent]:
    if tracking.paused_at is not None:
        await _close_pause(db, tracking, at, calendar)
    intents = await _settle(db, tracking, at, calendar)
    tracking.resolved_at = at
    tracking.last_evaluated_at = at
    return intents


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

async def create_tracking(
    db: AsyncSession,
    ticket: Ticket,
    config: ContractConfig,
    at: datetime,
) -> SlaTracking | None:
    """Create the tracking row for a new ticket, or ``None`` when SLA does not apply.

    Configuration problems are logged and skip tracking. An unreachable
    deadline propagates to the caller.
    """
    try:
        targets = resolve_targets(config, ticket.priority, settings.sla_default_warning_threshold)
        if targets is None:
            logger.info(
                "SLA not enabled for ticket %s (priority %s)",
                ticket.ticket_number,
                ticket.priority.value,
            )
            return None
        calendar = BusinessCalendar(config, lookahead_days=settings.sla_lookahead_days)
    except SlaConfigurationError as exc:
        logger.warning("SLA tracking skipped for ticket %s: %s", ticket.ticket_number, exc)
        return None

    response_deadline = add_business_minutes(at, targets.response_minutes, calendar, targets.on_call)
    resolution_deadline = add_business_minutes(
        at, targets.resolution_minutes, calendar, targets.on_call
    )

    tracking = SlaTracking(
        id=uuid.uuid4(),
        ticket_id=ticket.id,
        tenant_id=ticket.tenant_id,
        priority=ticket.priority,
        started_at=at,
        response_minutes=targets.response_minutes,
        resolution_minutes=targets.resolution_minutes,
        warning_threshold=targets.warning_threshold,
        on_call=targets.on_call,
        config_snapshot=config.to_dict(),
        response_deadline=response_deadline,
        resolution_deadline=resolution_deadline,
        breach_response=False,
        breach_resolution=False,
        warning_response_sent=False,
        warning_resolution_sent=False,
        paused_minutes=0,
    )
    db.add(tracking)
    await _apply_clock(db, tracking, ticket.status, at, calendar)
    await db.flush()
    logger.info(
        "SLA tracking created for ticket %s: response by %s, resolution by %s",
        ticket.ticket_number,
        response_deadline.isoformat(),
        resolution_deadline.isoformat(),
    )
    return tracking


async def record_first_response(
    db: AsyncSession,
    ticket: Ticket,
    at: datetime,
) -> SlaTracking | None:
    """Set ``responded_at`` once; later calls are no-ops."""
    tracking = await get_tracking(db, ticket.id, for_update=True)
    if tracking is None or tracking.responded_at is not None:
        return tracking
    await _mark_response(db, tracking, at)
    await db.flush()
    return tracking


async def on_status_change(
    db: AsyncSession,
    ticket: Ticket,
    old_status: TicketStatus,
    at: datetime,
) -> SlaTracking | None:
    tracking = await get_tracking(db, ticket.id, for_update=True)
    if tracking is None:
        return None
    if tracking.resolved_at is not None:
        logger.info(
            "SLA for ticket %s is frozen; status %s -> %s ignored",
            ticket.ticket_number,
            old_status.value,
            ticket.status.value,
        )
        return tracking

    calendar = calendar_for(tracking)
    responding = ticket.status in RESPONSE_STATUSES and tracking.responded_at is None

    # Settle the clock first so the response is judged against current deadlines.
    if ticket.status in TERMINAL_STATUSES:
        if tracking.paused_at is not None:
            await _close_pause(db, tracking, at, calendar)
        if responding:
            await _mark_response(db, tracking, at)
        await _freeze(db, tracking, at, calendar)
    else:
        await _apply_clock(db, tracking, ticket.status, at, calendar)
        if responding:
            await _mark_response(db, tracking, at)
    await db.flush()
    return tracking


async def on_priority_change(
    db: AsyncSession,
    ticket: Ticket,
    at: datetime,
) -> SlaTracking | None:
    """Re-target budgets for the ticket's new priority from the snapshot.

    Breach and warning flags already set stay set.
    """
    tracking = await get_tracking(db, ticket.id, for_update=True)
    if tracking is None or tracking.resolved_at is not None:
        return tracking

    config = ContractConfig.from_dict(tracking.config_snapshot)
    try:
        targets = resolve_targets(config, ticket.priority, settings.sla_default_warning_threshold)
    except SlaConfigurationError as exc:
        logger.warning("SLA re-target skipped for ticket %s: %s", ticket.ticket_number, exc)
        return tracking
    if targets is None:
        logger.info(
            "SLA not enabled for priority %s; ticket %s keeps %s budgets",
            ticket.priority.value,
            ticket.ticket_number,
            tracking.priority.value,
        )
        return tracking

    calendar = calendar_for(tracking)
    if tracking.paused_at is not None:
        # Close under the old eligibility and reopen under the new one.
        reason = tracking.pause_reason
        await _close_pause(db, tracking, at, calendar)
        tracking.on_call = targets.on_call
        await _open_pause(db, tracking, reason, at)

    tracking.priority = ticket.priority
    tracking.response_minutes = targets.response_minutes
    tracking.resolution_minutes = targets.resolution_minutes
    tracking.warning_threshold = targets.warning_threshold
    tracking.on_call = targets.on_call
    _recompute_deadlines(tracking, calendar)
    await db.flush()
    logger.info(
        "SLA re-targeted for ticket %s to %s: resolution by %s",
        ticket.ticket_number,
        ticket.priority.value,
        tracking.resolution_deadline.isoformat(),
    )
    return tracking


async def evaluate_tracking(
    db: AsyncSession,
    tracking: SlaTracking,
    status: TicketStatus,
    at: datetime,
) -> list[NotificationIntent]:
    """Sweep step for one row: pause logic, then breach and warning checks."""
    if tracking.resolved_at is not None:
        return []
    calendar = calendar_for(tracking)
    if status in TERMINAL_STATUSES:
        intents = await _freeze(db, tracking, at, calendar)
    else:
        await _apply_clock(db, tracking, status, at, calendar)
        intents = await _settle(db, tracking, at, calendar)
        tracking.last_evaluated_at = at
    await db.flush()
    return intents


async def rebuild_paused_minutes(db: AsyncSession, tracking: SlaTracking) -> int:
    """Re-derive ``paused_minutes`` from the pause log. The total never decreases."""
    rows = await list_pauses(db, tracking.id)
    total = fold_paused_minutes(
        PauseInterval(r.paused_at, r.resumed_at, r.business_minutes) for r in rows
    )
    if total < tracking.paused_minutes:
        logger.warning(
            "Pause log of tracking %s folds to %d minutes, below stored %d; keeping stored value",
            tracking.id,
            total,
            tracking.paused_minutes,
        )
        return tracking.paused_minutes
    if total != tracking.paused_minutes:
        tracking.paused_minutes = total
        _recompute_deadlines(tracking, calendar_for(tracking))
        await db.flush()
    return total


# ---------------------------------------------------------------------------
# Read projection
# ---------------------------------------------------------------------------

def get_status(tracking: SlaTracking | None, at: datetime) -> dict[str, Any]:
    """SLA read projection for the UI as of ``at``."""
    if tracking is None:
        return {"state": SlaState.NONE}

    if tracking.breach_resolution:
        state = SlaState.RESOLUTION_BREACHED
    elif tracking.breach_response:
        state = SlaState.RESPONSE_BREACHED
    else:
        state = SlaState.ACTIVE

    end = tracking.resolved_at or at
    elapsed = effective_elapsed_minutes(
        tracking.started_at,
        end,
        tracking.paused_at,
        tracking.pause_reason,
        tracking.paused_minutes,
        calendar_for(tracking),
        tracking.on_call,
    )

    def _percentage(budget: int) -> float:
        return round(elapsed / budget * 100, 1) if budget > 0 else 100.0

    responded = tracking.responded_at is not None
    return {
        "state": state,
        "tracking_id": tracking.id,
        "priority": tracking.priority,
        "clock_state": ClockState.PAUSED if tracking.is_paused else ClockState.RUNNING,
        "pause_reason": tracking.pause_reason,
        "started_at": tracking.started_at,
        "response_deadline": tracking.response_deadline,
        "resolution_deadline": tracking.resolution_deadline,
        "responded_at": tracking.responded_at,
        "resolved_at": tracking.resolved_at,
        "response_minutes": tracking.response_minutes,
        "resolution_minutes": tracking.resolution_minutes,
        "elapsed_minutes": elapsed,
        "paused_minutes": tracking.paused_minutes,
        "response_remaining_minutes": None if responded else tracking.response_minutes - elapsed,
        "resolution_remaining_minutes": tracking.resolution_minutes - elapsed,
        "response_percentage": None if responded else _percentage(tracking.response_minutes),
        "resolution_percentage": _percentage(tracking.resolution_minutes),
        "breach_response": tracking.breach_response,
        "breach_resolution": tracking.breach_resolution,
        "warning_response_sent": tracking.warning_response_sent,
        "warning_resolution_sent": tracking.warning_resolution_sent,
    }
