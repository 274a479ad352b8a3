import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sla_engine.database import get_db
from sla_engine.schemas.sla import DayScheduleResponse
from sla_engine.services import contract_service

router = APIRouter()


@router.get("/{contract_id}/calendar", response_model=list[DayScheduleResponse])
async def get_contract_calendar(
    contract_id: uuid.UUID,
    start: date = Query(...),
    end: date = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """Resolved coverage schedule of a contract, one entry per date."""
    days = await contract_service.get_calendar(db, contract_id, start, end)
    return [DayScheduleResponse.model_validate(d) for d in days]
