import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from sla_engine.models.base import AuthorType


class NoteCreate(BaseModel):
    content: str = Field(min_length=1)
    author_name: str
    author_type: AuthorType = AuthorType.agent
    is_internal: bool = False


class NoteResponse(BaseModel):
    id: uuid.UUID
    ticket_id: uuid.UUID
    author_name: str
    author_type: AuthorType
    content: str
    is_internal: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
