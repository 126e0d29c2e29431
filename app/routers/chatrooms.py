"""Chatroom endpoints: messages and unlocks."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter

from app.models.chat import Chatroom, Message, MessageCreate
from app.services.chatrooms import get_chatroom_gate

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/users/{user_id}/chatrooms/{chatroom_id}", response_model=Chatroom)
def get_chatroom(user_id: UUID, chatroom_id: UUID) -> Chatroom:
    return get_chatroom_gate().get_chatroom(user_id, chatroom_id)


@router.post(
    "/users/{user_id}/chatrooms/{chatroom_id}/messages",
    status_code=201,
    response_model=Message,
)
def send_message(user_id: UUID, chatroom_id: UUID, payload: MessageCreate) -> Message:
    """Append a message.  409 once a locked chatroom has used its preview budget."""
    return get_chatroom_gate().send_message(user_id, chatroom_id, payload.content)


@router.get("/users/{user_id}/chatrooms/{chatroom_id}/messages", response_model=list[Message])
def get_messages(user_id: UUID, chatroom_id: UUID) -> list[Message]:
    return get_chatroom_gate().get_messages(user_id, chatroom_id)


@router.post("/chatrooms/{chatroom_id}/unlock", response_model=Chatroom)
def unlock_chatroom(chatroom_id: UUID) -> Chatroom:
    return get_chatroom_gate().unlock(chatroom_id)


@router.post("/users/{user_id}/chatrooms/{chatroom_id}/proximity-unlock", response_model=Chatroom)
def proximity_unlock(user_id: UUID, chatroom_id: UUID) -> Chatroom:
    """Unlock on a participant's proximity signal.  409 if already unlocked."""
    return get_chatroom_gate().proximity_unlock(user_id, chatroom_id)
