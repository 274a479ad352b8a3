import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from sla_engine.database import get_db
from sla_engine.engine.errors import PauseSequenceError, UnreachableDeadlineError
from sla_engine.models.base import utcnow
from sla_engine.schemas.audit_log import AuditLogResponse
from sla_engine.schemas.sla import PauseHistoryResponse, SlaStatusResponse
from sla_engine.schemas.ticket import (
    TicketCreate,
    TicketDetailResponse,
    TicketResponse,
    TicketUpdate,
)
from sla_engine.schemas.ticket_note import NoteCreate, NoteResponse
from sla_engine.services import audit_service, note_service, sla_service, ticket_service

router = APIRouter()


# ---------------------------------------------------------------------------
# Ticket CRUD
# ---------------------------------------------------------------------------


@router.post("/", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
async def create_ticket(
    data: TicketCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a new ticket and start its SLA clock."""
    try:
        ticket = await ticket_service.create_ticket(db, data)
    except UnreachableDeadlineError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc
    await db.commit()
    return await ticket_service.get_ticket(db, ticket.id)


@router.get("/{ticket_id}", response_model=TicketDetailResponse)
async def get_ticket(
    ticket_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Get a single ticket with notes, audit log and SLA status."""
    ticket = await ticket_service.get_ticket(db, ticket_id)
    detail = TicketDetailResponse.model_validate(
        {
            **TicketResponse.model_validate(ticket).model_dump(),
            "notes": [NoteResponse.model_validate(n) for n in ticket.notes],
            "audit_log": [AuditLogResponse.model_validate(e) for e in ticket.audit_entries],
            "sla_status": sla_service.get_status(ticket.sla_tracking, utcnow()),
        }
    )
    return detail


@router.patch("/{ticket_id}", response_model=TicketResponse)
async def update_ticket(
    ticket_id: uuid.UUID,
    data: TicketUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Update title, status or priority."""
    try:
        ticket = await ticket_service.update_ticket(db, ticket_id, data)
        await db.commit()
    except (PauseSequenceError, StaleDataError) as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc) or "SLA tracking was modified concurrently",
        ) from exc
    except UnreachableDeadlineError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc
    return await ticket_service.get_ticket(db, ticket.id)


# ---------------------------------------------------------------------------
# Notes (nested under ticket)
# ---------------------------------------------------------------------------


@router.post(
    "/{ticket_id}/notes",
    response_model=NoteResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_note(
    ticket_id: uuid.UUID,
    data: NoteCreate,
    db: AsyncSession = Depends(get_db),
):
    """Add a note to a ticket."""
    try:
        note = await note_service.add_note(
            db,
            ticket_id,
            author_name=data.author_name,
            content=data.content,
            author_type=data.author_type,
            is_internal=data.is_internal,
        )
        response = NoteResponse.model_validate(note)
        await db.commit()
    except StaleDataError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="SLA tracking was modified concurrently",
        ) from exc
    return response


@router.get("/{ticket_id}/notes", response_model=list[NoteResponse])
async def list_notes(
    ticket_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """List all notes for a ticket."""
    return await note_service.list_notes(db, ticket_id)


# ---------------------------------------------------------------------------
# SLA (nested under ticket)
# ---------------------------------------------------------------------------


@router.get("/{ticket_id}/sla", response_model=SlaStatusResponse)
async def get_ticket_sla(
    ticket_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """SLA read projection; ``state`` is NONE when the ticket has no SLA."""
    ticket = await ticket_service.get_ticket(db, ticket_id)
    return sla_service.get_status(ticket.sla_tracking, utcnow())


@router.get("/{ticket_id}/sla/pauses", response_model=list[PauseHistoryResponse])
async def get_ticket_sla_pauses(
    ticket_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Pause/resume history of the ticket's SLA clock."""
    ticket = await ticket_service.get_ticket(db, ticket_id)
    if ticket.sla_tracking is None:
        return []
    return await sla_service.list_pauses(db, ticket.sla_tracking.id)


# ---------------------------------------------------------------------------
# Audit log (nested under ticket)
# ---------------------------------------------------------------------------


@router.get("/{ticket_id}/audit-log", response_model=list[AuditLogResponse])
async def get_audit_log(
    ticket_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Get the audit trail for a ticket."""
    await ticket_service.get_ticket(db, ticket_id)
    return await audit_service.get_audit_log(db, ticket_id)
