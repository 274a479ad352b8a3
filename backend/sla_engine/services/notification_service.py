"""Escalation notification outbox and delivery.

Intents are written in the same transaction that flips the SLA flags.
Delivery happens after commit and is best-effort: a failed attempt is
recorded on the intent and retried by a later delivery pass, never by
rolling back the flag that produced it.
"""
import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Protocol

import httpx
from fastapi import HTTPException, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from sla_engine.config import settings
from sla_engine.models.base import utcnow
from sla_engine.models.notification import NotificationIntent

logger = logging.getLogger(__name__)


class EscalationNotifier(Protocol):
    async def notify(self, intent: NotificationIntent) -> None: ...


def intent_payload(intent: NotificationIntent) -> dict[str, Any]:
    return {
        "id": str(intent.id),
        "tracking_id": str(intent.tracking_id),
        "ticket_id": str(intent.ticket_id),
        "tenant_id": str(intent.tenant_id),
        "kind": intent.kind.value,
        "record_snapshot": intent.record_snapshot,
        "created_at": intent.created_at.isoformat() if intent.created_at else None,
    }


class LoggingNotifier:
    """Default notifier: writes the intent to the application log."""

    async def notify(self, intent: NotificationIntent) -> None:
        logger.warning(
            "SLA escalation %s for ticket %s (tracking %s)",
            intent.kind.value,
            intent.ticket_id,
            intent.tracking_id,
        )


class WebhookNotifier:
    """POSTs the intent as JSON to the email subsystem."""

    def __init__(
        self,
        url: str,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self.timeout = timeout if timeout is not None else settings.notification_timeout_seconds
        self._client = client

    async def notify(self, intent: NotificationIntent) -> None:
        payload = intent_payload(intent)
        if self._client is not None:
            response = await self._client.post(self.url, json=payload, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.url, json=payload)
        response.raise_for_status()


def get_notifier() -> EscalationNotifier:
    if settings.notification_webhook_url:
        return WebhookNotifier(settings.notification_webhook_url)
    return LoggingNotifier()


def retry_delay(attempts: int, backoff_seconds: float | None = None) -> timedelta:
    """Backoff after ``attempts`` failed deliveries: doubles each time, capped."""
    if backoff_seconds is None:
        backoff_seconds = settings.notification_backoff_seconds
    seconds = backoff_seconds * 2 ** max(attempts - 1, 0)
    return timedelta(seconds=min(seconds, settings.notification_max_backoff_seconds))


async def dispatch_intents(
    db: AsyncSession,
    intents: list[NotificationIntent],
    notifier: EscalationNotifier,
    at: datetime | None = None,
    backoff_seconds: float | None = None,
) -> int:
    """Try each intent once. Returns how many were delivered.

    A failure schedules the next try through ``next_attempt_at`` with
    exponential backoff.
    """
    now = at or utcnow()
    delivered = 0
    for intent in intents:
        intent.attempts = (intent.attempts or 0) + 1
        try:
            await notifier.notify(intent)
        except Exception as exc:
            intent.last_error = f"{type(exc).__name__}: {exc}"[:500]
            intent.next_attempt_at = now + retry_delay(intent.attempts, backoff_seconds)
            logger.warning(
                "Notification %s (%s) attempt %d failed, next try at %s: %s",
                intent.id,
                intent.kind.value,
                intent.attempts,
                intent.next_attempt_at.isoformat(),
                exc,
            )
            continue
        intent.dispatched_at = now
        intent.last_error = None
        intent.next_attempt_at = None
        delivered += 1
    await db.commit()
    return delivered


async def get_undelivered(
    db: AsyncSession,
    at: datetime | None = None,
    limit: int = 500,
) -> list[NotificationIntent]:
    """Undelivered intents whose next try is due and which are under the retry limit."""
    now = at or utcnow()
    result = await db.execute(
        select(NotificationIntent)
        .where(
            NotificationIntent.dispatched_at.is_(None),
            NotificationIntent.attempts < settings.notification_retry_limit,
            or_(
                NotificationIntent.next_attempt_at.is_(None),
                NotificationIntent.next_attempt_at <= now,
            ),
        )
        .order_by(NotificationIntent.created_at.asc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def list_intents(
    db: AsyncSession,
    pending: bool = False,
    ticket_id: uuid.UUID | None = None,
    limit: int = 100,
) -> list[NotificationIntent]:
    """The notification-intent stream, oldest first."""
    query = select(NotificationIntent)
    if pending:
        query = query.where(NotificationIntent.dispatched_at.is_(None))
    if ticket_id is not None:
        query = query.where(NotificationIntent.ticket_id == ticket_id)
    query = query.order_by(NotificationIntent.created_at.asc()).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def acknowledge(db: AsyncSession, intent_id: uuid.UUID) -> NotificationIntent:
    """Mark an intent delivered by an external consumer. Idempotent."""
    result = await db.execute(
        select(NotificationIntent).where(NotificationIntent.id == intent_id)
    )
    intent = result.scalar_one_or_none()
    if intent is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found",
        )
    if intent.dispatched_at is None:
        intent.dispatched_at = utcnow()
        intent.last_error = None
        intent.next_attempt_at = None
        await db.flush()
    return intent
