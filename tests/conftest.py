"""Shared test fixtures.

Runs everything against the memory store backend with a controllable
clock, and provides a FastAPI ``test_client`` wired to the same stores.
"""

import os

os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import random
from collections.abc import Callable, Generator
from datetime import date, datetime, timedelta, timezone
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from app.db.memory import create_memory_stores
from app.db.registry import set_stores
from app.db.stores import Stores
from app.models.user import GeoPoint, Preferences, Profile, User
from app.services.chatrooms import ChatroomGate
from app.services.links import LinkLifecycleManager
from app.services.matching import MatchFinder

# Seoul City Hall and a spot ~70 m away; FAR_AWAY is ~2.5 km off.
HERE = GeoPoint(latitude=37.5665, longitude=126.9780)
NEARBY = GeoPoint(latitude=37.5670, longitude=126.9785)
FAR_AWAY = GeoPoint(latitude=37.5850, longitude=126.9950)

START = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def stores(clock: FakeClock) -> Generator[Stores, None, None]:
    """Fresh memory stores, also installed as the process-wide stores."""
    s = create_memory_stores(clock=clock, rng=random.Random(7))
    set_stores(s)
    yield s
    set_stores(None)


@pytest.fixture()
def link_manager(stores: Stores, clock: FakeClock) -> LinkLifecycleManager:
    return LinkLifecycleManager(stores.candidates, stores.links, stores.chatrooms, clock=clock)


@pytest.fixture()
def match_finder(stores: Stores, link_manager: LinkLifecycleManager, clock: FakeClock) -> MatchFinder:
    return MatchFinder(stores.candidates, link_manager, clock=clock)


@pytest.fixture()
def gate(stores: Stores) -> ChatroomGate:
    return ChatroomGate(stores.chatrooms)


@pytest.fixture()
def make_user(stores: Stores, clock: FakeClock) -> Callable[..., User]:
    """Insert a complete user record straight into the candidate store."""

    def _make(
        *,
        gender: str = "F",
        date_of_birth: date = date(1996, 6, 15),
        wants: tuple[str, ...] = ("M",),
        min_age: int = 25,
        max_age: int = 35,
        location: GeoPoint | None = NEARBY,
        is_searching: bool = True,
    ) -> User:
        now = clock()
        user = User(
            id=uuid4(),
            username=f"user-{uuid4().hex[:8]}",
            email=f"{uuid4().hex[:8]}@example.com",
            password_hash="not-a-real-hash",
            profile=Profile(first_name="Test", date_of_birth=date_of_birth, gender=gender),
            preferences=Preferences(min_age=min_age, max_age=max_age, gender=list(wants)),
            location=location,
            is_searching=is_searching,
            created_at=now,
            updated_at=now,
        )
        return stores.candidates.add(user)  # type: ignore[attr-defined]

    return _make


@pytest.fixture()
def seeker(make_user: Callable[..., User]) -> User:
    """Male, 30, wants women aged 25-35, standing at HERE."""
    return make_user(gender="M", date_of_birth=date(1995, 5, 1), wants=("F",), location=HERE)


@pytest.fixture()
def test_client(stores: Stores) -> Generator[TestClient, None, None]:
    """Provide a FastAPI TestClient on the memory stores."""
    from app.main import app

    with TestClient(app) as client:
        yield client
