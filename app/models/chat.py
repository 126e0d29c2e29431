"""Pydantic models for the ``chatrooms`` and ``messages`` tables."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.core.constants import MAX_MESSAGE_LENGTH


class Chatroom(BaseModel):
    """Full chatroom record returned from the store."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    link_id: UUID
    user_a_id: UUID
    user_b_id: UUID
    is_locked: bool = True
    created_at: datetime
    updated_at: datetime

    def has_participant(self, user_id: UUID) -> bool:
        return user_id in (self.user_a_id, self.user_b_id)


class MessageCreate(BaseModel):
    """Body of ``POST .../chatrooms/{chatroom_id}/messages``."""
    content: str = Field(min_length=1, max_length=MAX_MESSAGE_LENGTH)


class Message(BaseModel):
    """Full message record returned from the store."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    chatroom_id: UUID
    sender_id: UUID
    content: str
    created_at: datetime
