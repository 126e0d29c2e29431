"""Account, profile and search-state endpoints.

Endpoints are plain ``def`` so FastAPI runs them in its threadpool; every
handler blocks on store calls.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Query

from app.core.constants import DEFAULT_SEARCH_LIMIT, MAX_SEARCH_LIMIT
from app.models.link import Link
from app.models.user import (
    LocationUpdate,
    LoginRequest,
    Preferences,
    Profile,
    UserCreate,
    UserPublic,
    UserUpdate,
)
from app.services.matching import get_match_finder
from app.services.users import get_user_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/users", status_code=201, response_model=UserPublic)
def register_user(payload: UserCreate) -> UserPublic:
    user = get_user_service().register(payload.username, payload.email, payload.password)
    return user.to_public()


@router.post("/login", response_model=UserPublic)
def login(payload: LoginRequest) -> UserPublic:
    # TODO: issue a session token once the client has somewhere to keep it.
    return get_user_service().authenticate(payload.email, payload.password).to_public()


@router.get("/users/{user_id}", response_model=UserPublic)
def get_user(user_id: UUID) -> UserPublic:
    return get_user_service().get_user(user_id).to_public()


@router.put("/users/{user_id}", response_model=UserPublic)
def update_account(user_id: UUID, payload: UserUpdate) -> UserPublic:
    user = get_user_service().update_account(user_id, payload.username, payload.email)
    return user.to_public()


@router.put("/users/{user_id}/profile", response_model=UserPublic)
def update_profile(user_id: UUID, profile: Profile) -> UserPublic:
    return get_user_service().update_profile(user_id, profile).to_public()


@router.put("/users/{user_id}/preferences", response_model=UserPublic)
def update_preferences(user_id: UUID, preferences: Preferences) -> UserPublic:
    return get_user_service().update_preferences(user_id, preferences).to_public()


@router.put("/users/{user_id}/location", response_model=UserPublic)
def update_location(user_id: UUID, location: LocationUpdate) -> UserPublic:
    user = get_user_service().update_location(user_id, location.latitude, location.longitude)
    return user.to_public()


@router.post("/users/{user_id}/start-searching", response_model=UserPublic)
def start_searching(user_id: UUID) -> UserPublic:
    return get_user_service().start_searching(user_id).to_public()


@router.post("/users/{user_id}/stop-searching", response_model=UserPublic)
def stop_searching(user_id: UUID) -> UserPublic:
    return get_user_service().stop_searching(user_id).to_public()


@router.get("/users/{user_id}/matches", response_model=list[UserPublic])
def search_matches(
    user_id: UUID,
    limit: int = Query(DEFAULT_SEARCH_LIMIT, ge=1, le=MAX_SEARCH_LIMIT),
) -> list[UserPublic]:
    """List compatible nearby candidates without creating a link."""
    return [u.to_public() for u in get_match_finder().search_candidates(user_id, limit)]


@router.post("/users/{user_id}/find-match", status_code=201, response_model=Link)
def find_match(user_id: UUID) -> Link:
    """Pair the user with one candidate; 404 ``no_match_found`` if nobody qualifies."""
    return get_match_finder().find_match(user_id)
