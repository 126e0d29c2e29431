"""Unit tests for the chatroom gate: preview budget and unlocking."""

from __future__ import annotations

from uuid import uuid4

import pytest

from app.core.errors import InvalidStateError, NotFoundError, UnauthorizedError


@pytest.fixture()
def room(link_manager, seeker, make_user):
    """A freshly opened, locked chatroom plus its two participants."""
    partner = make_user()
    link = link_manager.create_link(seeker.id, partner.id)
    chatroom = link_manager.respond_to_link(partner.id, link.id, accept=True).chatroom
    return chatroom, seeker, partner


class TestLockedPreview:
    """While locked, the chatroom holds at most two messages in total."""

    def test_two_messages_then_blocked(self, gate, room) -> None:
        chatroom, a, b = room

        gate.send_message(a.id, chatroom.id, "hi")
        gate.send_message(b.id, chatroom.id, "hey")

        with pytest.raises(InvalidStateError, match="message limit reached"):
            gate.send_message(a.id, chatroom.id, "are you nearby?")
        assert len(gate.get_messages(a.id, chatroom.id)) == 2

    def test_budget_is_shared_not_per_sender(self, gate, room) -> None:
        chatroom, a, b = room

        gate.send_message(a.id, chatroom.id, "one")
        gate.send_message(a.id, chatroom.id, "two")

        with pytest.raises(InvalidStateError):
            gate.send_message(b.id, chatroom.id, "three")

    def test_proximity_unlock_lifts_the_cap(self, gate, room) -> None:
        chatroom, a, b = room
        gate.send_message(a.id, chatroom.id, "one")
        gate.send_message(b.id, chatroom.id, "two")

        unlocked = gate.proximity_unlock(b.id, chatroom.id)
        gate.send_message(a.id, chatroom.id, "three")
        gate.send_message(a.id, chatroom.id, "four")

        assert unlocked.is_locked is False
        assert [m.content for m in gate.get_messages(b.id, chatroom.id)] == [
            "one", "two", "three", "four",
        ]

    def test_messages_keep_send_order(self, gate, room, clock) -> None:
        chatroom, a, b = room
        gate.send_message(b.id, chatroom.id, "first")
        clock.advance(1)
        gate.send_message(a.id, chatroom.id, "second")

        messages = gate.get_messages(a.id, chatroom.id)

        assert [(m.sender_id, m.content) for m in messages] == [(b.id, "first"), (a.id, "second")]
        assert messages[0].created_at < messages[1].created_at


class TestUnlock:

    def test_proximity_unlock_twice_fails(self, gate, room) -> None:
        chatroom, a, b = room
        gate.proximity_unlock(a.id, chatroom.id)

        with pytest.raises(InvalidStateError, match="already unlocked"):
            gate.proximity_unlock(b.id, chatroom.id)

    def test_plain_unlock_is_idempotent(self, gate, room) -> None:
        chatroom, _, _ = room

        assert gate.unlock(chatroom.id).is_locked is False
        assert gate.unlock(chatroom.id).is_locked is False

    def test_unlock_unknown_chatroom(self, gate) -> None:
        with pytest.raises(NotFoundError):
            gate.unlock(uuid4())

    def test_outsider_cannot_proximity_unlock(self, gate, room, make_user) -> None:
        chatroom, _, _ = room
        outsider = make_user()

        with pytest.raises(UnauthorizedError):
            gate.proximity_unlock(outsider.id, chatroom.id)
        assert gate.get_chatroom(room[1].id, chatroom.id).is_locked is True


class TestParticipantChecks:

    def test_outsider_cannot_send_or_read(self, gate, room, make_user) -> None:
        chatroom, _, _ = room
        outsider = make_user()

        with pytest.raises(UnauthorizedError):
            gate.send_message(outsider.id, chatroom.id, "hello?")
        with pytest.raises(UnauthorizedError):
            gate.get_messages(outsider.id, chatroom.id)
        with pytest.raises(UnauthorizedError):
            gate.get_chatroom(outsider.id, chatroom.id)

    def test_unknown_chatroom(self, gate, seeker) -> None:
        with pytest.raises(NotFoundError):
            gate.send_message(seeker.id, uuid4(), "hello")

    def test_new_chatroom_is_empty_and_locked(self, gate, room) -> None:
        chatroom, a, _ = room

        assert gate.get_chatroom(a.id, chatroom.id).is_locked is True
        assert gate.get_messages(a.id, chatroom.id) == []
