"""Store interfaces the services depend on.

One abstract store per entity.  Concrete backends live in
``app.db.memory`` and ``app.db.supabase_stores``; ``app.db.registry``
picks one from settings.

Every mutating method that guards a state transition is conditional and
reports whether it won, so callers never need an in-process lock across a
store round trip.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from app.core.geo import birth_date_bounds
from app.models.chat import Chatroom, Message
from app.models.enums import LinkStatus
from app.models.link import Link
from app.models.user import GeoPoint, Preferences, Profile, User


@dataclass(frozen=True)
class CandidateFilter:
    """Mutual-compatibility filter for a searching user.

    ``gender_in`` / ``min_age`` / ``max_age`` describe who the seeker wants;
    ``seeker_gender`` / ``seeker_age`` are checked against each candidate's
    own preferences.
    """

    exclude_id: UUID
    near: GeoPoint
    radius_m: float
    gender_in: tuple[str, ...]
    min_age: int
    max_age: int
    seeker_gender: str
    seeker_age: int
    today: date

    @property
    def birth_date_range(self) -> tuple[date, date]:
        return birth_date_bounds(self.min_age, self.max_age, self.today)


class CandidateStore(ABC):
    """Users, their search state and the geospatial candidate query."""

    @abstractmethod
    def create(self, username: str, email: str, password_hash: str) -> User:
        """Insert a new user.  Raises ``ConflictError`` on duplicate email."""

    @abstractmethod
    def get_by_id(self, user_id: UUID) -> User | None: ...

    @abstractmethod
    def get_by_email(self, email: str) -> User | None: ...

    @abstractmethod
    def update_account(
        self, user_id: UUID, username: str | None = None, email: str | None = None
    ) -> User | None:
        """Change username and/or email.  Raises ``ConflictError`` if the email is taken."""

    @abstractmethod
    def update_profile(self, user_id: UUID, profile: Profile) -> User | None: ...

    @abstractmethod
    def update_preferences(self, user_id: UUID, preferences: Preferences) -> User | None: ...

    @abstractmethod
    def update_location(self, user_id: UUID, latitude: float, longitude: float) -> User | None: ...

    @abstractmethod
    def set_searching(self, user_id: UUID, is_searching: bool) -> bool:
        """Set the search flag.  Turning it on only succeeds for free users."""

    @abstractmethod
    def claim_for_link(self, user_id: UUID, link_id: UUID) -> bool:
        """Point the user at *link_id* and stop their search.

        Only succeeds if the user is still searching and holds no link.
        """

    @abstractmethod
    def release_from_link(self, user_id: UUID, link_id: UUID) -> bool:
        """Clear the back-reference and resume searching.

        Only succeeds if the user still points at *link_id*.
        """

    @abstractmethod
    def find_one(self, filters: CandidateFilter) -> User | None:
        """Return one qualifying candidate, sampled uniformly, or None."""

    @abstractmethod
    def find_many(self, filters: CandidateFilter, limit: int) -> list[User]:
        """Return up to *limit* qualifying candidates, nearest first."""


class LinkStore(ABC):

    @abstractmethod
    def create(
        self,
        user_a_id: UUID,
        user_b_id: UUID,
        *,
        link_id: UUID,
        created_at: datetime,
        expires_at: datetime,
    ) -> Link: ...

    @abstractmethod
    def get_by_id(self, link_id: UUID) -> Link | None: ...

    @abstractmethod
    def update_status(self, link_id: UUID, status: LinkStatus) -> Link | None:
        """Move a pending link to *status*.

        Returns the updated link, or None when the link was no longer
        pending (someone else already resolved it).
        """

    @abstractmethod
    def expire_overdue(self, now: datetime) -> list[Link]:
        """Mark every pending link with ``expires_at < now`` expired; return them."""

    @abstractmethod
    def list_unreleased(self) -> list[Link]:
        """Rejected or expired links whose participants have not been released yet."""

    @abstractmethod
    def mark_released(self, link_id: UUID, released_at: datetime) -> None: ...


class ChatroomStore(ABC):

    @abstractmethod
    def create(self, link_id: UUID, user_a_id: UUID, user_b_id: UUID) -> Chatroom:
        """Insert a locked chatroom.  Raises ``ConflictError`` if *link_id* has one."""

    @abstractmethod
    def get_by_id(self, chatroom_id: UUID) -> Chatroom | None: ...

    @abstractmethod
    def get_by_link_id(self, link_id: UUID) -> Chatroom | None: ...

    @abstractmethod
    def set_locked(self, chatroom_id: UUID, is_locked: bool) -> Chatroom | None: ...

    @abstractmethod
    def append_message(self, chatroom_id: UUID, sender_id: UUID, content: str) -> Message: ...

    @abstractmethod
    def list_messages(self, chatroom_id: UUID) -> list[Message]:
        """Messages in creation order."""

    @abstractmethod
    def count_messages(self, chatroom_id: UUID) -> int: ...


@dataclass(frozen=True)
class Stores:
    """The three stores a running app works against."""

    candidates: CandidateStore
    links: LinkStore
    chatrooms: ChatroomStore

    def ping(self) -> bool:
        """Cheap connectivity probe used by ``/health``."""
        return self.candidates.get_by_email("health-probe@invalid") is None
