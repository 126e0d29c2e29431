"""Link lifecycle: creation, responses and the expiration sweep.

A link moves ``pending -> accepted | rejected | expired`` exactly once.
Every transition is a conditional store write ("only if still pending"),
so an explicit response and the sweep can race on the same link and only
the first writer wins; the loser gets ``InvalidStateError`` (responses) or
simply does not see the link (sweep).

Releasing participants is also conditional per user: a user is only put
back into the search pool if they still point at the link being released,
so someone who has already entered a new link is never reset.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID, uuid4

from app.core.config import settings
from app.core.errors import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
)
from app.db.registry import get_stores
from app.db.stores import CandidateStore, ChatroomStore, LinkStore
from app.models.chat import Chatroom
from app.models.enums import LinkStatus
from app.models.link import Link, LinkResponseResult

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LinkLifecycleManager:
    """Owns every mutation of ``Link`` records and the users they reference."""

    def __init__(
        self,
        candidates: CandidateStore,
        links: LinkStore,
        chatrooms: ChatroomStore,
        clock: Callable[[], datetime] = _utcnow,
        ttl_seconds: int | None = None,
    ) -> None:
        self._candidates = candidates
        self._links = links
        self._chatrooms = chatrooms
        self._clock = clock
        self._ttl = timedelta(seconds=ttl_seconds if ttl_seconds is not None else settings.LINK_TTL_SECONDS)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_link(self, user_a_id: UUID, user_b_id: UUID) -> Link | None:
        """Claim both users and persist a pending link between them.

        Returns None when *user_b_id* was claimed by someone else first;
        the seeker's claim is rolled back in that case.  Raises
        ``InvalidStateError`` if *user_a_id* itself is no longer free.
        """
        if user_a_id == user_b_id:
            raise InvalidStateError("cannot link a user with themselves")

        link_id = uuid4()
        if not self._candidates.claim_for_link(user_a_id, link_id):
            raise InvalidStateError("user is not in searching mode")
        if not self._candidates.claim_for_link(user_b_id, link_id):
            self._candidates.release_from_link(user_a_id, link_id)
            logger.info(
                "link_candidate_taken",
                extra={"user_id": str(user_a_id), "candidate_id": str(user_b_id)},
            )
            return None

        now = self._clock()
        try:
            link = self._links.create(
                user_a_id,
                user_b_id,
                link_id=link_id,
                created_at=now,
                expires_at=now + self._ttl,
            )
        except Exception:
            self._candidates.release_from_link(user_a_id, link_id)
            self._candidates.release_from_link(user_b_id, link_id)
            raise

        logger.info(
            "link_created",
            extra={
                "link_id": str(link.id),
                "user_a_id": str(user_a_id),
                "user_b_id": str(user_b_id),
                "expires_at": link.expires_at.isoformat(),
            },
        )
        return link

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _participant_link(self, user_id: UUID, link_id: UUID) -> Link:
        link = self._links.get_by_id(link_id)
        if link is None:
            raise NotFoundError("link not found")
        if not link.has_participant(user_id):
            raise UnauthorizedError("user is not part of this link")
        return link

    def get_link(self, user_id: UUID, link_id: UUID) -> Link:
        return self._participant_link(user_id, link_id)

    def get_chatroom_for_link(self, user_id: UUID, link_id: UUID) -> Chatroom:
        """Return the chatroom of an accepted link.

        An accepted link whose chatroom is missing (the process died between
        the status write and the chatroom insert) gets its chatroom created
        here.  ``link_id`` is unique on chatrooms, so this never duplicates.
        """
        link = self._participant_link(user_id, link_id)
        if link.status is not LinkStatus.accepted:
            raise InvalidStateError(f"link is {link.status.value}, not accepted")

        chatroom = self._chatrooms.get_by_link_id(link.id)
        if chatroom is not None:
            return chatroom

        logger.warning("chatroom_missing_for_accepted_link", extra={"link_id": str(link.id)})
        return self._open_chatroom(link)

    def _open_chatroom(self, link: Link) -> Chatroom:
        try:
            return self._chatrooms.create(link.id, link.user_a_id, link.user_b_id)
        except ConflictError:
            existing = self._chatrooms.get_by_link_id(link.id)
            if existing is None:
                raise
            return existing

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    def respond_to_link(self, user_id: UUID, link_id: UUID, accept: bool) -> LinkResponseResult:
        """Record a participant's accept / reject.

        Accepting opens exactly one locked chatroom.  Rejecting puts both
        participants back into the search pool.
        """
        link = self._participant_link(user_id, link_id)
        if link.status.is_terminal:
            raise InvalidStateError(f"link already resolved ({link.status.value})")

        target = LinkStatus.accepted if accept else LinkStatus.rejected
        updated = self._links.update_status(link.id, target)
        if updated is None:
            # Lost the race against the other participant or the sweep.
            current = self._links.get_by_id(link.id)
            state = current.status.value if current else "unknown"
            raise InvalidStateError(f"link already resolved ({state})")

        logger.info(
            "link_responded",
            extra={
                "link_id": str(link.id),
                "user_id": str(user_id),
                "status": target.value,
            },
        )

        if accept:
            chatroom = self._open_chatroom(updated)
            logger.info(
                "chatroom_opened",
                extra={"link_id": str(link.id), "chatroom_id": str(chatroom.id)},
            )
            return LinkResponseResult(link=updated, chatroom=chatroom)

        self._release(updated)
        return LinkResponseResult(link=updated)

    def _release(self, link: Link) -> int:
        """Put both participants back into the search pool; mark the link released."""
        released = 0
        for participant in (link.user_a_id, link.user_b_id):
            if self._candidates.release_from_link(participant, link.id):
                released += 1
        self._links.mark_released(link.id, self._clock())
        logger.info(
            "link_released",
            extra={
                "link_id": str(link.id),
                "status": link.status.value,
                "users_released": released,
            },
        )
        return released

    # ------------------------------------------------------------------
    # Sweep
    # ------------------------------------------------------------------

    def run_expiration_sweep(self) -> dict[str, Any]:
        """Expire overdue pending links and release their participants.

        Step one is a single conditional bulk update (pending and overdue ->
        expired).  Step two walks every rejected or expired link not yet
        released, which also finishes releases that failed on an earlier
        tick or part-way through a rejection.  One link failing does not
        stop the rest.
        """
        now = self._clock()
        newly_expired = self._links.expire_overdue(now)
        for link in newly_expired:
            logger.info(
                "link_expired",
                extra={"link_id": str(link.id), "expires_at": link.expires_at.isoformat()},
            )

        released_links = 0
        users_released = 0
        failed = 0
        for link in self._links.list_unreleased():
            try:
                users_released += self._release(link)
                released_links += 1
            except Exception as exc:
                failed += 1
                logger.error(
                    "link_release_failed",
                    extra={"link_id": str(link.id), "error_message": str(exc)},
                )

        return {
            "expired": len(newly_expired),
            "released": released_links,
            "users_released": users_released,
            "failed": failed,
        }


def get_link_manager() -> LinkLifecycleManager:
    """Build a manager on the process-wide stores."""
    stores = get_stores()
    return LinkLifecycleManager(stores.candidates, stores.links, stores.chatrooms)
