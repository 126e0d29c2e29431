"""Process-local store backend.

Used for local development and tests.  Each store guards its dicts with a
``threading.Lock`` held only for the duration of one call, which gives the
same per-call atomicity the conditional updates of the Supabase backend
give.  Records are stored as pydantic models and copied on the way out so
callers never share mutable state with the store.
"""

from __future__ import annotations

import random
import threading
from collections.abc import Callable
from datetime import datetime, timezone
from uuid import UUID, uuid4

from app.core.errors import ConflictError
from app.core.geo import age_on, haversine_m
from app.db.stores import (
    CandidateFilter,
    CandidateStore,
    ChatroomStore,
    LinkStore,
    Stores,
)
from app.models.chat import Chatroom, Message
from app.models.enums import LinkStatus
from app.models.link import Link
from app.models.user import GeoPoint, Preferences, Profile, User

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _distance_m(a: GeoPoint, b: GeoPoint) -> float:
    return haversine_m(a.latitude, a.longitude, b.latitude, b.longitude)


def _qualifies(candidate: User, filters: CandidateFilter) -> bool:
    """Python rendition of the candidate query's WHERE clause."""
    if candidate.id == filters.exclude_id:
        return False
    if not candidate.is_searching or candidate.current_link_id is not None:
        return False
    if candidate.location is None or candidate.profile.date_of_birth is None:
        return False
    if candidate.profile.gender not in filters.gender_in:
        return False
    if not filters.min_age <= age_on(candidate.profile.date_of_birth, filters.today) <= filters.max_age:
        return False
    prefs = candidate.preferences
    if filters.seeker_gender not in prefs.gender:
        return False
    if not prefs.min_age <= filters.seeker_age <= prefs.max_age:
        return False
    return _distance_m(candidate.location, filters.near) <= filters.radius_m


class MemoryCandidateStore(CandidateStore):

    def __init__(self, clock: Clock = _utcnow, rng: random.Random | None = None) -> None:
        self._clock = clock
        self._rng = rng or random.Random()
        self._lock = threading.Lock()
        self._users: dict[UUID, User] = {}

    def _update(self, user_id: UUID, **fields: object) -> User | None:
        user = self._users.get(user_id)
        if user is None:
            return None
        updated = user.model_copy(update={**fields, "updated_at": self._clock()})
        self._users[user_id] = updated
        return updated.model_copy(deep=True)

    def create(self, username: str, email: str, password_hash: str) -> User:
        with self._lock:
            if any(u.email == email for u in self._users.values()):
                raise ConflictError("email already registered")
            now = self._clock()
            user = User(
                id=uuid4(),
                username=username,
                email=email,
                password_hash=password_hash,
                created_at=now,
                updated_at=now,
            )
            self._users[user.id] = user
            return user.model_copy(deep=True)

    def add(self, user: User) -> User:
        """Insert a fully-formed user record (fixtures and seeding)."""
        with self._lock:
            self._users[user.id] = user.model_copy(deep=True)
            return user.model_copy(deep=True)

    def get_by_id(self, user_id: UUID) -> User | None:
        with self._lock:
            user = self._users.get(user_id)
            return user.model_copy(deep=True) if user else None

    def get_by_email(self, email: str) -> User | None:
        with self._lock:
            for user in self._users.values():
                if user.email == email:
                    return user.model_copy(deep=True)
            return None

    def update_account(
        self, user_id: UUID, username: str | None = None, email: str | None = None
    ) -> User | None:
        with self._lock:
            if email is not None and any(
                u.email == email and u.id != user_id for u in self._users.values()
            ):
                raise ConflictError("email already registered")
            fields = {k: v for k, v in (("username", username), ("email", email)) if v is not None}
            return self._update(user_id, **fields)

    def update_profile(self, user_id: UUID, profile: Profile) -> User | None:
        with self._lock:
            return self._update(user_id, profile=profile.model_copy())

    def update_preferences(self, user_id: UUID, preferences: Preferences) -> User | None:
        with self._lock:
            return self._update(user_id, preferences=preferences.model_copy())

    def update_location(self, user_id: UUID, latitude: float, longitude: float) -> User | None:
        with self._lock:
            return self._update(
                user_id, location=GeoPoint(latitude=latitude, longitude=longitude)
            )

    def set_searching(self, user_id: UUID, is_searching: bool) -> bool:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return False
            if is_searching and user.current_link_id is not None:
                return False
            self._update(user_id, is_searching=is_searching)
            return True

    def claim_for_link(self, user_id: UUID, link_id: UUID) -> bool:
        with self._lock:
            user = self._users.get(user_id)
            if user is None or not user.is_searching or user.current_link_id is not None:
                return False
            self._update(user_id, is_searching=False, current_link_id=link_id)
            return True

    def release_from_link(self, user_id: UUID, link_id: UUID) -> bool:
        with self._lock:
            user = self._users.get(user_id)
            if user is None or user.current_link_id != link_id:
                return False
            self._update(user_id, is_searching=True, current_link_id=None)
            return True

    def find_one(self, filters: CandidateFilter) -> User | None:
        with self._lock:
            eligible = [u for u in self._users.values() if _qualifies(u, filters)]
            if not eligible:
                return None
            return self._rng.choice(eligible).model_copy(deep=True)

    def find_many(self, filters: CandidateFilter, limit: int) -> list[User]:
        with self._lock:
            eligible = [u for u in self._users.values() if _qualifies(u, filters)]
            eligible.sort(key=lambda u: _distance_m(u.location, filters.near))  # type: ignore[arg-type]
            return [u.model_copy(deep=True) for u in eligible[:limit]]


class MemoryLinkStore(LinkStore):

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._links: dict[UUID, Link] = {}

    def create(
        self,
        user_a_id: UUID,
        user_b_id: UUID,
        *,
        link_id: UUID,
        created_at: datetime,
        expires_at: datetime,
    ) -> Link:
        link = Link(
            id=link_id,
            user_a_id=user_a_id,
            user_b_id=user_b_id,
            status=LinkStatus.pending,
            created_at=created_at,
            expires_at=expires_at,
        )
        with self._lock:
            if link_id in self._links:
                raise ConflictError("link id already exists")
            self._links[link_id] = link
        return link.model_copy()

    def get_by_id(self, link_id: UUID) -> Link | None:
        with self._lock:
            link = self._links.get(link_id)
            return link.model_copy() if link else None

    def update_status(self, link_id: UUID, status: LinkStatus) -> Link | None:
        with self._lock:
            link = self._links.get(link_id)
            if link is None or link.status is not LinkStatus.pending:
                return None
            updated = link.model_copy(update={"status": status})
            self._links[link_id] = updated
            return updated.model_copy()

    def expire_overdue(self, now: datetime) -> list[Link]:
        expired: list[Link] = []
        with self._lock:
            for link_id, link in list(self._links.items()):
                if link.status is LinkStatus.pending and link.expires_at < now:
                    updated = link.model_copy(update={"status": LinkStatus.expired})
                    self._links[link_id] = updated
                    expired.append(updated.model_copy())
        return expired

    def list_unreleased(self) -> list[Link]:
        with self._lock:
            return [
                link.model_copy()
                for link in self._links.values()
                if link.status.releases_participants and link.released_at is None
            ]

    def mark_released(self, link_id: UUID, released_at: datetime) -> None:
        with self._lock:
            link = self._links.get(link_id)
            if link is not None and link.released_at is None:
                self._links[link_id] = link.model_copy(update={"released_at": released_at})


class MemoryChatroomStore(ChatroomStore):

    def __init__(self, clock: Clock = _utcnow) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._chatrooms: dict[UUID, Chatroom] = {}
        self._by_link: dict[UUID, UUID] = {}
        self._messages: dict[UUID, list[Message]] = {}

    def create(self, link_id: UUID, user_a_id: UUID, user_b_id: UUID) -> Chatroom:
        with self._lock:
            if link_id in self._by_link:
                raise ConflictError("chatroom already exists for link")
            now = self._clock()
            chatroom = Chatroom(
                id=uuid4(),
                link_id=link_id,
                user_a_id=user_a_id,
                user_b_id=user_b_id,
                is_locked=True,
                created_at=now,
                updated_at=now,
            )
            self._chatrooms[chatroom.id] = chatroom
            self._by_link[link_id] = chatroom.id
            self._messages[chatroom.id] = []
            return chatroom.model_copy()

    def get_by_id(self, chatroom_id: UUID) -> Chatroom | None:
        with self._lock:
            chatroom = self._chatrooms.get(chatroom_id)
            return chatroom.model_copy() if chatroom else None

    def get_by_link_id(self, link_id: UUID) -> Chatroom | None:
        with self._lock:
            chatroom_id = self._by_link.get(link_id)
            if chatroom_id is None:
                return None
            return self._chatrooms[chatroom_id].model_copy()

    def set_locked(self, chatroom_id: UUID, is_locked: bool) -> Chatroom | None:
        with self._lock:
            chatroom = self._chatrooms.get(chatroom_id)
            if chatroom is None:
                return None
            updated = chatroom.model_copy(
                update={"is_locked": is_locked, "updated_at": self._clock()}
            )
            self._chatrooms[chatroom_id] = updated
            return updated.model_copy()

    def append_message(self, chatroom_id: UUID, sender_id: UUID, content: str) -> Message:
        message = Message(
            id=uuid4(),
            chatroom_id=chatroom_id,
            sender_id=sender_id,
            content=content,
            created_at=self._clock(),
        )
        with self._lock:
            self._messages.setdefault(chatroom_id, []).append(message)
        return message.model_copy()

    def list_messages(self, chatroom_id: UUID) -> list[Message]:
        with self._lock:
            return [m.model_copy() for m in self._messages.get(chatroom_id, [])]

    def count_messages(self, chatroom_id: UUID) -> int:
        with self._lock:
            return len(self._messages.get(chatroom_id, []))


def create_memory_stores(clock: Clock = _utcnow, rng: random.Random | None = None) -> Stores:
    """Build a fresh, empty set of memory stores."""
    return Stores(
        candidates=MemoryCandidateStore(clock=clock, rng=rng),
        links=MemoryLinkStore(),
        chatrooms=MemoryChatroomStore(clock=clock),
    )
