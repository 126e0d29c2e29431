"""Account, profile and search-state operations on users."""

from __future__ import annotations

import logging
from uuid import UUID

from app.core.errors import InvalidCredentialsError, InvalidStateError, NotFoundError
from app.core.security import hash_password, verify_password
from app.db.registry import get_stores
from app.db.stores import CandidateStore
from app.models.user import Preferences, Profile, User

logger = logging.getLogger(__name__)


class UserService:

    def __init__(self, candidates: CandidateStore) -> None:
        self._candidates = candidates

    @staticmethod
    def _found(user: User | None) -> User:
        if user is None:
            raise NotFoundError("user not found")
        return user

    def register(self, username: str, email: str, password: str) -> User:
        """Create an account.  Duplicate emails raise ``ConflictError``."""
        user = self._candidates.create(username, email.lower(), hash_password(password))
        logger.info("user_registered", extra={"user_id": str(user.id)})
        return user

    def authenticate(self, email: str, password: str) -> User:
        """Check credentials.

        Unknown email and wrong password produce the same error so the
        response does not reveal which accounts exist.
        """
        user = self._candidates.get_by_email(email.lower())
        if user is None or not verify_password(user.password_hash, password):
            raise InvalidCredentialsError()
        return user

    def get_user(self, user_id: UUID) -> User:
        return self._found(self._candidates.get_by_id(user_id))

    def update_account(self, user_id: UUID, username: str | None = None, email: str | None = None) -> User:
        """Change username and/or email.  A taken email raises ``ConflictError``."""
        user = self._candidates.update_account(
            user_id, username=username, email=email.lower() if email else None
        )
        return self._found(user)

    def update_profile(self, user_id: UUID, profile: Profile) -> User:
        return self._found(self._candidates.update_profile(user_id, profile))

    def update_preferences(self, user_id: UUID, preferences: Preferences) -> User:
        return self._found(self._candidates.update_preferences(user_id, preferences))

    def update_location(self, user_id: UUID, latitude: float, longitude: float) -> User:
        return self._found(self._candidates.update_location(user_id, latitude, longitude))

    def start_searching(self, user_id: UUID) -> User:
        user = self.get_user(user_id)
        if user.current_link_id is not None:
            raise InvalidStateError("user is already in a link")
        if not self._candidates.set_searching(user_id, True):
            # A match claimed the user between the read and the write.
            raise InvalidStateError("user is already in a link")
        return self.get_user(user_id)

    def stop_searching(self, user_id: UUID) -> User:
        self.get_user(user_id)
        self._candidates.set_searching(user_id, False)
        return self.get_user(user_id)


def get_user_service() -> UserService:
    return UserService(get_stores().candidates)
