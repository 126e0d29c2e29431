"""Pydantic models for the ``links`` table."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.models.chat import Chatroom
from app.models.enums import LinkStatus


class Link(BaseModel):
    """Full link record returned from the store."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_a_id: UUID
    user_b_id: UUID
    status: LinkStatus = LinkStatus.pending
    created_at: datetime
    expires_at: datetime
    released_at: datetime | None = None

    def has_participant(self, user_id: UUID) -> bool:
        return user_id in (self.user_a_id, self.user_b_id)


class LinkResponseRequest(BaseModel):
    """Body of ``POST .../links/{link_id}/respond``."""
    accept: bool


class LinkResponseResult(BaseModel):
    """Outcome of a respond-to-link call."""
    link: Link
    chatroom: Chatroom | None = None
