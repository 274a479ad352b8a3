import uuid

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from sla_engine.models.sla_policy import SlaPolicy, SlaPolicyTarget
from sla_engine.schemas.sla_policy import SlaPolicyTargetItem


async def get_policy(db: AsyncSession, policy_id: uuid.UUID) -> SlaPolicy:
    result = await db.execute(
        select(SlaPolicy)
        .where(SlaPolicy.id == policy_id)
        .options(selectinload(SlaPolicy.targets))
        .execution_options(populate_existing=True)
    )
    policy = result.scalar_one_or_none()
    if policy is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="SLA policy not found",
        )
    return policy


async def bulk_upsert_targets(
    db: AsyncSession,
    policy_id: uuid.UUID,
    items: list[SlaPolicyTargetItem],
) -> SlaPolicy:
    """Insert or update per-priority targets. Open trackings keep their snapshot."""
    policy = await get_policy(db, policy_id)
    existing = {t.priority: t for t in policy.targets}
    for item in items:
        target = existing.get(item.priority)
        if target is not None:
            target.response_minutes = item.response_minutes
            target.resolution_minutes = item.resolution_minutes
            target.enabled = item.enabled
        else:
            db.add(
                SlaPolicyTarget(
                    policy_id=policy.id,
                    priority=item.priority,
                    response_minutes=item.response_minutes,
                    resolution_minutes=item.resolution_minutes,
                    enabled=item.enabled,
                )
            )
    await db.flush()
    return await get_policy(db, policy_id)
