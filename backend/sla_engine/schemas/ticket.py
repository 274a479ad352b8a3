import uuid
from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from sla_engine.models.base import TicketPriority, TicketStatus
from sla_engine.schemas.audit_log import AuditLogResponse
from sla_engine.schemas.sla import SlaStatusResponse
from sla_engine.schemas.ticket_note import NoteResponse


class TicketCreate(BaseModel):
    title: str = Field(min_length=1)
    priority: TicketPriority
    contract_id: uuid.UUID | None = None
    tenant_id: uuid.UUID | None = None


class TicketUpdate(BaseModel):
    title: str | None = None
    status: TicketStatus | None = None
    priority: TicketPriority | None = None

    @model_validator(mode="before")
    @classmethod
    def prevent_null_fields(cls, values):
        if isinstance(values, dict):
            for field in ("title", "status", "priority"):
                if field in values and values[field] is None:
                    raise ValueError(f"{field} cannot be null")
        return values


class TicketResponse(BaseModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    ticket_number: str
    title: str
    status: TicketStatus
    priority: TicketPriority
    contract_id: uuid.UUID | None
    responded_at: datetime | None
    resolved_at: datetime | None
    closed_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TicketDetailResponse(TicketResponse):
    notes: list[NoteResponse] = []
    audit_log: list[AuditLogResponse] = []
    sla_status: SlaStatusResponse
