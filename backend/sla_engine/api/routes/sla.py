import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sla_engine.database import get_db
from sla_engine.schemas.sla import NotificationIntentResponse, SweepResponse
from sla_engine.services import notification_service
from sla_engine.tasks import sla_checker

router = APIRouter()


@router.post("/sweep", response_model=SweepResponse)
async def run_sweep():
    """Run one SLA sweep now."""
    result = await sla_checker.sweep()
    return SweepResponse(
        evaluated=result.evaluated,
        failed=result.failed,
        intents_created=result.intents_created,
        delivered=result.delivered,
    )


@router.get("/notifications", response_model=list[NotificationIntentResponse])
async def list_notifications(
    pending: bool = Query(False),
    ticket_id: uuid.UUID | None = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
):
    """Notification-intent stream consumed by the email subsystem."""
    return await notification_service.list_intents(
        db, pending=pending, ticket_id=ticket_id, limit=limit
    )


@router.post("/notifications/{intent_id}/ack", response_model=NotificationIntentResponse)
async def acknowledge_notification(
    intent_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Mark a notification intent as delivered."""
    intent = await notification_service.acknowledge(db, intent_id)
    await db.commit()
    return intent
