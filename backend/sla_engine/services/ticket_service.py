import logging
import uuid
from datetime import datetime

from fastapi import HTTPException, status
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from sla_engine.config import settings
from sla_engine.models.base import ActorType, TicketPriority, TicketStatus, utcnow
from sla_engine.models.ticket import Ticket
from sla_engine.schemas.ticket import TicketCreate, TicketUpdate
from sla_engine.services import audit_service, contract_service, sla_service

logger = logging.getLogger(__name__)

VALID_TRANSITIONS: dict[TicketStatus, frozenset[TicketStatus]] = {
    TicketStatus.NEW: frozenset({TicketStatus.OPEN, TicketStatus.IN_PROGRESS, TicketStatus.CANCELLED}),
    TicketStatus.OPEN: frozenset(
        {
            TicketStatus.IN_PROGRESS,
            TicketStatus.PENDING,
            TicketStatus.ON_HOLD,
            TicketStatus.RESOLVED,
            TicketStatus.CANCELLED,
        }
    ),
    TicketStatus.IN_PROGRESS: frozenset(
        {TicketStatus.PENDING, TicketStatus.ON_HOLD, TicketStatus.RESOLVED, TicketStatus.CLOSED}
    ),
    TicketStatus.PENDING: frozenset(
        {TicketStatus.IN_PROGRESS, TicketStatus.ON_HOLD, TicketStatus.RESOLVED, TicketStatus.CLOSED}
    ),
    TicketStatus.ON_HOLD: frozenset(
        {TicketStatus.IN_PROGRESS, TicketStatus.PENDING, TicketStatus.RESOLVED, TicketStatus.CLOSED}
    ),
    TicketStatus.RESOLVED: frozenset({TicketStatus.CLOSED, TicketStatus.IN_PROGRESS}),
    TicketStatus.CLOSED: frozenset(),
    TicketStatus.CANCELLED: frozenset(),
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _next_ticket_number(db: AsyncSession) -> str:
    """Next ticket number from the ``ticket_number_seq`` sequence."""
    result = await db.execute(text("SELECT nextval('ticket_number_seq')"))
    return f"INC-{result.scalar():06d}"


def _as_str(value) -> str | None:
    if value is None:
        return None
    if isinstance(value, (TicketStatus, TicketPriority)):
        return value.value
    return str(value)


_TICKET_LOAD_OPTIONS = [
    selectinload(Ticket.notes),
    selectinload(Ticket.audit_entries),
    selectinload(Ticket.sla_tracking),
]


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

async def create_ticket(
    db: AsyncSession,
    data: TicketCreate,
    at: datetime | None = None,
    actor_name: str | None = None,
) -> Ticket:
    """Create a ticket and, when its contract has SLA for the priority, its tracking."""
    now = at or utcnow()
    config = None
    if data.contract_id is not None:
        config = await contract_service.load_contract_config(db, data.contract_id)

    ticket = Ticket(
        tenant_id=data.tenant_id or uuid.UUID(settings.default_tenant_id),
        ticket_number=await _next_ticket_number(db),
        title=data.title,
        status=TicketStatus.NEW,
        priority=data.priority,
        contract_id=data.contract_id,
    )
    db.add(ticket)
    await db.flush()

    await audit_service.log_action(
        db=db,
        ticket_id=ticket.id,
        actor_type=ActorType.user if actor_name else ActorType.system,
        actor_name=actor_name,
        action="created",
    )

    if config is None:
        logger.info("Ticket %s has no contract; SLA not tracked", ticket.ticket_number)
    else:
        await sla_service.create_tracking(db, ticket, config, now)

    await db.flush()
    return ticket


async def get_ticket(db: AsyncSession, ticket_id: uuid.UUID) -> Ticket:
    """Get a single ticket by ID with notes, audit trail and SLA tracking loaded."""
    result = await db.execute(
        select(Ticket)
        .where(Ticket.id == ticket_id)
        .options(*_TICKET_LOAD_OPTIONS)
        .execution_options(populate_existing=True)
    )
    ticket = result.scalar_one_or_none()
    if ticket is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Ticket not found",
        )
    return ticket


async def update_ticket(
    db: AsyncSession,
    ticket_id: uuid.UUID,
    data: TicketUpdate,
    at: datetime | None = None,
    actor_name: str | None = None,
) -> Ticket:
    """Apply field changes with status-transition validation, SLA hooks and audit."""
    ticket = await get_ticket(db, ticket_id)
    now = at or utcnow()
    actor_type = ActorType.user if actor_name else ActorType.system

    update_fields = data.model_dump(exclude_unset=True)

    new_status = update_fields.get("status")
    if new_status is not None and new_status != ticket.status:
        if new_status not in VALID_TRANSITIONS[ticket.status]:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Invalid status transition {ticket.status.value} -> {new_status.value}",
            )

    for field, new_value in update_fields.items():
        old_value = getattr(ticket, field)
        if old_value == new_value:
            continue

        setattr(ticket, field, new_value)

        if field == "status":
            if new_value == TicketStatus.RESOLVED:
                ticket.resolved_at = now
            elif new_value == TicketStatus.CLOSED:
                ticket.closed_at = now
                if ticket.resolved_at is None:
                    ticket.resolved_at = now
            if new_value in sla_service.RESPONSE_STATUSES and ticket.responded_at is None:
                ticket.responded_at = now
            await sla_service.on_status_change(db, ticket, old_value, now)
        elif field == "priority":
            await sla_service.on_priority_change(db, ticket, now)

        await audit_service.log_action(
            db=db,
            ticket_id=ticket.id,
            actor_type=actor_type,
            actor_name=actor_name,
            action="updated",
            field_changed=field,
            old_value=_as_str(old_value),
            new_value=_as_str(new_value),
        )

    await db.flush()
    return ticket
