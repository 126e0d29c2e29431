"""Unit tests for candidate discovery (MatchFinder)."""

from __future__ import annotations

from datetime import date
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from app.core.errors import InvalidStateError, NoMatchFoundError, NotFoundError
from app.models.enums import LinkStatus
from app.services.links import LinkLifecycleManager
from app.services.matching import MatchFinder, build_candidate_filter

from conftest import FAR_AWAY, HERE


class TestFindMatch:
    """Mutual compatibility, radius and the resulting pending link."""

    def test_scenario_pairs_compatible_nearby_users(self, stores, match_finder, seeker, make_user) -> None:
        """A (M, 30, wants F 25-35) and B (F, 29, wants M 25-35) within radius."""
        b = make_user()

        link = match_finder.find_match(seeker.id)

        assert link.status is LinkStatus.pending
        assert {link.user_a_id, link.user_b_id} == {seeker.id, b.id}
        assert (link.expires_at - link.created_at).total_seconds() == 30

        for user_id in (seeker.id, b.id):
            user = stores.candidates.get_by_id(user_id)
            assert user.is_searching is False
            assert user.current_link_id == link.id

    def test_no_candidates_leaves_seeker_searching(self, stores, match_finder, seeker) -> None:
        with pytest.raises(NoMatchFoundError):
            match_finder.find_match(seeker.id)

        user = stores.candidates.get_by_id(seeker.id)
        assert user.is_searching is True
        assert user.current_link_id is None

    def test_candidate_outside_radius_is_ignored(self, match_finder, seeker, make_user) -> None:
        make_user(location=FAR_AWAY)

        with pytest.raises(NoMatchFoundError):
            match_finder.find_match(seeker.id)

    def test_candidate_not_searching_is_ignored(self, match_finder, seeker, make_user) -> None:
        make_user(is_searching=False)

        with pytest.raises(NoMatchFoundError):
            match_finder.find_match(seeker.id)

    def test_wrong_gender_is_ignored(self, match_finder, seeker, make_user) -> None:
        make_user(gender="M")

        with pytest.raises(NoMatchFoundError):
            match_finder.find_match(seeker.id)

    def test_reciprocal_gender_preference_required(self, match_finder, seeker, make_user) -> None:
        """B fits A's preferences but does not want A's gender."""
        make_user(wants=("F",))

        with pytest.raises(NoMatchFoundError):
            match_finder.find_match(seeker.id)

    def test_reciprocal_age_preference_required(self, match_finder, seeker, make_user) -> None:
        """A is 30; B only wants 20-29."""
        make_user(min_age=20, max_age=29)

        with pytest.raises(NoMatchFoundError):
            match_finder.find_match(seeker.id)

    @pytest.mark.parametrize(
        ("dob", "expected_match"),
        [
            (date(1991, 3, 1), True),    # turns 35 today
            (date(1990, 3, 1), False),   # turns 36 today
            (date(2001, 3, 1), True),    # turns 25 today
            (date(2001, 3, 2), False),   # still 24
        ],
    )
    def test_age_bounds_are_inclusive(self, match_finder, seeker, make_user, dob, expected_match) -> None:
        make_user(date_of_birth=dob)

        if expected_match:
            assert match_finder.find_match(seeker.id).status is LinkStatus.pending
        else:
            with pytest.raises(NoMatchFoundError):
                match_finder.find_match(seeker.id)

    def test_seeker_must_be_searching(self, stores, match_finder, seeker, make_user) -> None:
        make_user()
        stores.candidates.set_searching(seeker.id, False)

        with pytest.raises(InvalidStateError):
            match_finder.find_match(seeker.id)

    def test_unknown_user(self, match_finder) -> None:
        with pytest.raises(NotFoundError):
            match_finder.find_match(uuid4())

    def test_seeker_without_location(self, match_finder, make_user) -> None:
        user = make_user(gender="M", wants=("F",), location=None)

        with pytest.raises(InvalidStateError):
            match_finder.find_match(user.id)

    def test_matched_candidate_is_not_offered_again(self, match_finder, seeker, make_user) -> None:
        make_user()
        match_finder.find_match(seeker.id)
        other = make_user(gender="M", date_of_birth=date(1994, 1, 1), wants=("F",), location=HERE)

        with pytest.raises(NoMatchFoundError):
            match_finder.find_match(other.id)

    def test_retries_when_candidate_claimed_concurrently(self, stores, seeker, make_user, clock) -> None:
        make_user()
        link = MagicMock()
        manager = MagicMock(spec=LinkLifecycleManager)
        manager.create_link.side_effect = [None, link]
        finder = MatchFinder(stores.candidates, manager, clock=clock)

        assert finder.find_match(seeker.id) is link
        assert manager.create_link.call_count == 2

    def test_gives_up_after_claim_attempts(self, stores, seeker, make_user, clock) -> None:
        make_user()
        manager = MagicMock(spec=LinkLifecycleManager)
        manager.create_link.return_value = None
        finder = MatchFinder(stores.candidates, manager, clock=clock, claim_attempts=3)

        with pytest.raises(NoMatchFoundError):
            finder.find_match(seeker.id)
        assert manager.create_link.call_count == 3


class TestSearchCandidates:

    def test_lists_nearest_first_without_linking(self, stores, match_finder, seeker, make_user) -> None:
        near = make_user()
        nearer = make_user(location=HERE)
        make_user(location=FAR_AWAY)

        result = match_finder.search_candidates(seeker.id, limit=10)

        assert [u.id for u in result] == [nearer.id, near.id]
        assert stores.candidates.get_by_id(seeker.id).current_link_id is None

    def test_limit_is_applied(self, match_finder, seeker, make_user) -> None:
        for _ in range(3):
            make_user()

        assert len(match_finder.search_candidates(seeker.id, limit=2)) == 2


class TestBuildCandidateFilter:

    def test_carries_both_directions(self, seeker) -> None:
        filters = build_candidate_filter(seeker, date(2026, 3, 1))

        assert filters.exclude_id == seeker.id
        assert filters.gender_in == ("F",)
        assert (filters.min_age, filters.max_age) == (25, 35)
        assert filters.seeker_gender == "M"
        assert filters.seeker_age == 30
        assert filters.birth_date_range == (date(1990, 3, 2), date(2001, 3, 1))
