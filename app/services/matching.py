"""Candidate discovery.

A match requires compatibility in both directions (each side's gender and
age fall inside the other's preferences) and a great-circle distance of at
most ``MATCH_RADIUS_METERS``.  Among qualifying candidates the store samples
one uniformly at random.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime, timezone
from uuid import UUID

from app.core.constants import (
    DEFAULT_SEARCH_LIMIT,
    MATCH_CLAIM_ATTEMPTS,
    MATCH_RADIUS_METERS,
    MAX_SEARCH_LIMIT,
)
from app.core.errors import InvalidStateError, NoMatchFoundError, NotFoundError
from app.core.geo import age_on
from app.db.registry import get_stores
from app.db.stores import CandidateFilter, CandidateStore
from app.models.link import Link
from app.models.user import User
from app.services.links import LinkLifecycleManager, get_link_manager

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_candidate_filter(user: User, today: date, radius_m: float = MATCH_RADIUS_METERS) -> CandidateFilter:
    """Translate a seeker's profile and preferences into a store filter.

    Raises ``InvalidStateError`` if the profile lacks what matching needs.
    """
    if user.location is None:
        raise InvalidStateError("user has no location")
    if user.profile.date_of_birth is None or not user.profile.gender:
        raise InvalidStateError("user profile needs date_of_birth and gender")

    return CandidateFilter(
        exclude_id=user.id,
        near=user.location,
        radius_m=radius_m,
        gender_in=tuple(user.preferences.gender),
        min_age=user.preferences.min_age,
        max_age=user.preferences.max_age,
        seeker_gender=user.profile.gender,
        seeker_age=age_on(user.profile.date_of_birth, today),
        today=today,
    )


class MatchFinder:

    def __init__(
        self,
        candidates: CandidateStore,
        link_manager: LinkLifecycleManager,
        clock: Callable[[], datetime] = _utcnow,
        radius_m: float = MATCH_RADIUS_METERS,
        claim_attempts: int = MATCH_CLAIM_ATTEMPTS,
    ) -> None:
        self._candidates = candidates
        self._link_manager = link_manager
        self._clock = clock
        self._radius_m = radius_m
        self._claim_attempts = claim_attempts

    def _load(self, user_id: UUID) -> User:
        user = self._candidates.get_by_id(user_id)
        if user is None:
            raise NotFoundError("user not found")
        return user

    def find_match(self, user_id: UUID) -> Link:
        """Pair a searching user with one compatible nearby candidate.

        Raises ``NoMatchFoundError`` when nobody qualifies; the seeker stays
        in the search pool.  If the sampled candidate is claimed by a
        concurrent match, another sample is drawn, up to
        ``claim_attempts`` times.
        """
        user = self._load(user_id)
        if not user.is_searching:
            raise InvalidStateError("user is not in searching mode")

        filters = build_candidate_filter(user, self._clock().date(), self._radius_m)

        for attempt in range(1, self._claim_attempts + 1):
            candidate = self._candidates.find_one(filters)
            if candidate is None:
                break
            link = self._link_manager.create_link(user.id, candidate.id)
            if link is not None:
                return link
            logger.info(
                "match_claim_retry",
                extra={"user_id": str(user.id), "attempt": attempt},
            )

        logger.info("no_match_found", extra={"user_id": str(user.id)})
        raise NoMatchFoundError("no potential match found")

    def search_candidates(self, user_id: UUID, limit: int = DEFAULT_SEARCH_LIMIT) -> list[User]:
        """List compatible nearby candidates without creating a link."""
        user = self._load(user_id)
        limit = max(1, min(limit, MAX_SEARCH_LIMIT))
        filters = build_candidate_filter(user, self._clock().date(), self._radius_m)
        return self._candidates.find_many(filters, limit)


def get_match_finder() -> MatchFinder:
    return MatchFinder(get_stores().candidates, get_link_manager())
