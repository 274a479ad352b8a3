import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sla_engine.models.audit_log import AuditLog
from sla_engine.models.base import ActorType


async def log_action(
    db: AsyncSession,
    ticket_id: uuid.UUID,
    actor_type: ActorType,
    action: str,
    actor_name: str | None = None,
    field_changed: str | None = None,
    old_value: str | None = None,
    new_value: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> AuditLog:
    """Append an audit log entry for a ticket action."""
    entry = AuditLog(
        ticket_id=ticket_id,
        actor_type=actor_type,
        actor_name=actor_name,
        action=action,
        field_changed=field_changed,
        old_value=old_value,
        new_value=new_value,
    )
    if metadata is not None:
        entry.metadata_ = metadata
    db.add(entry)
    await db.flush()
    return entry


async def get_audit_log(
    db: AsyncSession,
    ticket_id: uuid.UUID,
) -> list[AuditLog]:
    """Get all audit log entries for a ticket, newest first."""
    result = await db.execute(
        select(AuditLog)
        .where(AuditLog.ticket_id == ticket_id)
        .order_by(AuditLog.created_at.desc())
    )
    return list(result.scalars().all())
