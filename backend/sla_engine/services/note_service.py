import uuid
from datetime import datetime

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sla_engine.models.base import ActorType, AuthorType, utcnow
from sla_engine.models.ticket import Ticket
from sla_engine.models.ticket_note import TicketNote
from sla_engine.services import audit_service, sla_service


async def add_note(
    db: AsyncSession,
    ticket_id: uuid.UUID,
    author_name: str,
    content: str,
    author_type: AuthorType = AuthorType.agent,
    is_internal: bool = False,
    at: datetime | None = None,
) -> TicketNote:
    """Add a note to a ticket. The first public agent note is the first response."""
    result = await db.execute(select(Ticket).where(Ticket.id == ticket_id))
    ticket = result.scalar_one_or_none()
    if not ticket:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ticket not found")

    now = at or utcnow()
    note = TicketNote(
        ticket_id=ticket_id,
        author_name=author_name,
        author_type=author_type,
        content=content,
        is_internal=is_internal,
    )
    db.add(note)
    await db.flush()

    await audit_service.log_action(
        db=db,
        ticket_id=ticket_id,
        actor_type=ActorType.user,
        actor_name=author_name,
        action="note_added",
        metadata={"note_id": str(note.id), "is_internal": is_internal},
    )

    if author_type == AuthorType.agent and not is_internal:
        if ticket.responded_at is None:
            ticket.responded_at = now
        await sla_service.record_first_response(db, ticket, now)

    await db.flush()
    return note


async def list_notes(
    db: AsyncSession,
    ticket_id: uuid.UUID,
) -> list[TicketNote]:
    """List all notes for a ticket, ordered by created_at asc."""
    result = await db.execute(
        select(TicketNote)
        .where(TicketNote.ticket_id == ticket_id)
        .order_by(TicketNote.created_at.asc())
    )
    return list(result.scalars().all())
