import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sla_engine.database import get_db
from sla_engine.schemas.sla_policy import SlaPolicyResponse, SlaPolicyTargetsUpdate
from sla_engine.services import sla_policy_service

router = APIRouter()


@router.get("/{policy_id}", response_model=SlaPolicyResponse)
async def get_sla_policy(
    policy_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Get an SLA policy with its per-priority targets."""
    return await sla_policy_service.get_policy(db, policy_id)


@router.patch("/{policy_id}/targets", response_model=SlaPolicyResponse)
async def update_sla_policy_targets(
    policy_id: uuid.UUID,
    data: SlaPolicyTargetsUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Bulk upsert targets. Tickets already tracked keep the targets they started with."""
    policy = await sla_policy_service.bulk_upsert_targets(db, policy_id, data.targets)
    await db.commit()
    return policy
