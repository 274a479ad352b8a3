import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Enum, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sla_engine.models.base import AuthorType, Base, TimestampMixin

if TYPE_CHECKING:
    from sla_engine.models.ticket import Ticket


class TicketNote(TimestampMixin, Base):
    __tablename__ = "ticket_notes"

    ticket_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("tickets.id"), nullable=False)
    author_name: Mapped[str] = mapped_column(String, nullable=False)
    author_type: Mapped[AuthorType] = mapped_column(
        Enum(AuthorType, name="authortype"), default=AuthorType.agent, nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_internal: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")

    # Relationships
    ticket: Mapped["Ticket"] = relationship("Ticket", back_populates="notes", lazy="raise")
