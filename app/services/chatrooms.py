"""Chatroom gate: participant checks, the locked preview budget, unlocks.

A chatroom starts locked.  While locked, at most ``LOCKED_MESSAGE_LIMIT``
messages may exist in it in total; a proximity unlock by either
participant lifts the cap for good.
"""

from __future__ import annotations

import logging
from uuid import UUID

from app.core.constants import LOCKED_MESSAGE_LIMIT
from app.core.errors import InvalidStateError, NotFoundError, UnauthorizedError
from app.db.registry import get_stores
from app.db.stores import ChatroomStore
from app.models.chat import Chatroom, Message

logger = logging.getLogger(__name__)


class ChatroomGate:

    def __init__(self, chatrooms: ChatroomStore, locked_limit: int = LOCKED_MESSAGE_LIMIT) -> None:
        self._chatrooms = chatrooms
        self._locked_limit = locked_limit

    def _load(self, chatroom_id: UUID) -> Chatroom:
        chatroom = self._chatrooms.get_by_id(chatroom_id)
        if chatroom is None:
            raise NotFoundError("chatroom not found")
        return chatroom

    def _participant_chatroom(self, user_id: UUID, chatroom_id: UUID) -> Chatroom:
        chatroom = self._load(chatroom_id)
        if not chatroom.has_participant(user_id):
            raise UnauthorizedError("user is not part of this chatroom")
        return chatroom

    def get_chatroom(self, user_id: UUID, chatroom_id: UUID) -> Chatroom:
        return self._participant_chatroom(user_id, chatroom_id)

    def unlock(self, chatroom_id: UUID) -> Chatroom:
        """Unlock unconditionally.  Unlocking an open chatroom is a no-op."""
        chatroom = self._chatrooms.set_locked(chatroom_id, False)
        if chatroom is None:
            raise NotFoundError("chatroom not found")
        logger.info("chatroom_unlocked", extra={"chatroom_id": str(chatroom_id)})
        return chatroom

    def proximity_unlock(self, user_id: UUID, chatroom_id: UUID) -> Chatroom:
        """Unlock on a participant's proximity signal.

        The signal is trusted as sent; no physical proof is verified.
        """
        chatroom = self._participant_chatroom(user_id, chatroom_id)
        if not chatroom.is_locked:
            raise InvalidStateError("chatroom is already unlocked")
        logger.info(
            "chatroom_proximity_unlock",
            extra={"chatroom_id": str(chatroom_id), "user_id": str(user_id)},
        )
        return self.unlock(chatroom_id)

    def send_message(self, user_id: UUID, chatroom_id: UUID, content: str) -> Message:
        chatroom = self._participant_chatroom(user_id, chatroom_id)
        if chatroom.is_locked:
            count = self._chatrooms.count_messages(chatroom_id)
            if count >= self._locked_limit:
                raise InvalidStateError("chatroom is locked and message limit reached")
        return self._chatrooms.append_message(chatroom_id, user_id, content)

    def get_messages(self, user_id: UUID, chatroom_id: UUID) -> list[Message]:
        self._participant_chatroom(user_id, chatroom_id)
        return self._chatrooms.list_messages(chatroom_id)


def get_chatroom_gate() -> ChatroomGate:
    return ChatroomGate(get_stores().chatrooms)
