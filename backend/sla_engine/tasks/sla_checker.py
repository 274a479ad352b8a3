import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm.exc import StaleDataError

from sla_engine.config import settings
from sla_engine.database import async_session
from sla_engine.models.base import utcnow
from sla_engine.models.sla_tracking import SlaTracking
from sla_engine.models.ticket import Ticket
from sla_engine.services import notification_service, sla_service
from sla_engine.services.notification_service import EscalationNotifier

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    evaluated: int = 0
    failed: int = 0
    intents_created: int = 0
    delivered: int = 0


async def _open_tracking_ids() -> list[uuid.UUID]:
    async with async_session() as db:
        result = await db.execute(
            select(SlaTracking.id)
            .where(SlaTracking.resolved_at.is_(None))
            .order_by(SlaTracking.started_at.asc())
        )
        return list(result.scalars().all())


async def _evaluate_one(tracking_id: uuid.UUID, now: datetime) -> int:
    """Evaluate one tracking in its own transaction. Returns intents created."""
    async with async_session() as db:
        result = await db.execute(
            select(SlaTracking, Ticket.status)
            .join(Ticket, Ticket.id == SlaTracking.ticket_id)
            .where(SlaTracking.id == tracking_id)
            .with_for_update(of=SlaTracking)
            .execution_options(populate_existing=True)
        )
        row = result.one_or_none()
        if row is None:
            return 0
        tracking, ticket_status = row
        intents = await sla_service.evaluate_tracking(db, tracking, ticket_status, now)
        await db.commit()
        return len(intents)


async def deliver_pending(
    now: datetime | None = None,
    notifier: EscalationNotifier | None = None,
) -> int:
    """One delivery pass over the intents that are due. Returns how many were delivered."""
    now = now or utcnow()
    notifier = notifier or notification_service.get_notifier()
    async with async_session() as db:
        intents = await notification_service.get_undelivered(db, at=now)
        if not intents:
            return 0
        return await notification_service.dispatch_intents(db, intents, notifier, at=now)


async def sweep(
    now: datetime | None = None,
    notifier: EscalationNotifier | None = None,
    deliver: bool = True,
) -> SweepResult:
    """Re-evaluate every open tracking once, then optionally run a delivery pass.

    A failing or slow row is logged and left for the next cycle.
    """
    now = now or utcnow()
    result = SweepResult()

    for tracking_id in await _open_tracking_ids():
        try:
            created = await asyncio.wait_for(
                _evaluate_one(tracking_id, now),
                timeout=settings.sla_row_timeout_seconds,
            )
        except asyncio.TimeoutError:
            result.failed += 1
            logger.error("SLA evaluation of tracking %s timed out", tracking_id)
            continue
        except StaleDataError:
            result.failed += 1
            logger.warning("Tracking %s changed concurrently; retrying next cycle", tracking_id)
            continue
        except Exception:
            result.failed += 1
            logger.exception("SLA evaluation of tracking %s failed", tracking_id)
            continue
        result.evaluated += 1
        result.intents_created += created

    if deliver:
        try:
            result.delivered = await deliver_pending(now, notifier)
        except Exception:
            logger.exception("Notification delivery failed")

    if result.intents_created or result.failed:
        logger.info(
            "SLA sweep complete: %d evaluated, %d failed, %d notifications raised, %d delivered",
            result.evaluated,
            result.failed,
            result.intents_created,
            result.delivered,
        )
    return result


async def check_sla_breaches():
    """Runs the SLA sweep every ``sla_sweep_interval_seconds``."""
    while True:
        try:
            await sweep(deliver=False)
        except Exception:
            logger.exception("SLA check failed")
        await asyncio.sleep(settings.sla_sweep_interval_seconds)


async def deliver_notifications():
    """Delivers due notification intents every ``notification_interval_seconds``.

    Runs as its own task beside ``check_sla_breaches``.
    """
    while True:
        try:
            await deliver_pending()
        except Exception:
            logger.exception("Notification delivery failed")
        await asyncio.sleep(settings.notification_interval_seconds)
