import uuid

from pydantic import BaseModel, Field, model_validator

from sla_engine.models.base import TicketPriority


class SlaPolicyTargetItem(BaseModel):
    priority: TicketPriority
    response_minutes: int = Field(ge=0)
    resolution_minutes: int = Field(ge=0)
    enabled: bool = True

    model_config = {"from_attributes": True}

    @model_validator(mode="after")
    def response_within_resolution(self):
        if self.response_minutes > self.resolution_minutes:
            raise ValueError("response_minutes must not exceed resolution_minutes")
        return self


class SlaPolicyTargetsUpdate(BaseModel):
    targets: list[SlaPolicyTargetItem]


class SlaPolicyResponse(BaseModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    name: str
    code: str
    warning_threshold: float | None
    targets: list[SlaPolicyTargetItem]

    model_config = {"from_attributes": True}
