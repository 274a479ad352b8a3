import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from sla_engine.models.base import ActorType


class AuditLogResponse(BaseModel):
    id: uuid.UUID
    ticket_id: uuid.UUID
    actor_type: ActorType
    actor_name: str | None = None
    action: str
    field_changed: str | None
    old_value: str | None
    new_value: str | None
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="metadata_")
    created_at: datetime

    model_config = {"from_attributes": True, "populate_by_name": True}
