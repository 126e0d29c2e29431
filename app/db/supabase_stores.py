"""Supabase (PostgREST + PostGIS) store backend.

Tables and the ``find_match_candidates`` RPC are defined in
``supabase/migrations``.  Every ``execute()`` goes through ``_execute`` which
bounds it with the point or scan timeout from settings and turns
connectivity failures into ``TransientStoreError``.

Conditional transitions are expressed as filtered UPDATEs; PostgREST
returns the rows it changed, so an empty ``data`` means the condition did
not hold and the caller lost the race.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from datetime import date, datetime, timezone
from typing import Any, TypeVar
from uuid import UUID, uuid4

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from app.core.config import settings
from app.core.errors import ConflictError, TransientStoreError
from app.db.stores import (
    CandidateFilter,
    CandidateStore,
    ChatroomStore,
    LinkStore,
    Stores,
)
from app.db.supabase import get_supabase
from app.models.chat import Chatroom, Message
from app.models.enums import LinkStatus
from app.models.link import Link
from app.models.user import GeoPoint, Preferences, Profile, User

logger = logging.getLogger(__name__)

T = TypeVar("T")

_UNIQUE_VIOLATION = "23505"

_USER_COLUMNS = (
    "id, username, email, password_hash, first_name, last_name, date_of_birth, "
    "gender, bio, profile_pic_url, pref_min_age, pref_max_age, pref_genders, "
    "latitude, longitude, is_searching, current_link_id, created_at, updated_at"
)

_executor = ThreadPoolExecutor(max_workers=16, thread_name_prefix="store-call")


def _execute(call: Callable[[], T], *, timeout: float, operation: str) -> T:
    """Run a store call with a hard timeout.

    Unique violations become ``ConflictError``; timeouts and transport
    errors become ``TransientStoreError``.  Other PostgREST errors
    propagate unchanged.

    A timed-out call cannot be cancelled once it is running: the caller
    gets its error right away, but the worker thread stays busy until the
    HTTP client gives up on its own.  ``get_supabase`` sets that client
    timeout to ``STORE_SCAN_TIMEOUT_SECONDS``, which bounds how long a
    hung call can hold a worker.
    """
    future = _executor.submit(call)
    try:
        return future.result(timeout=timeout)
    except FuturesTimeoutError as exc:
        # Only takes effect while the call is still queued.
        future.cancel()
        logger.warning(
            "store_call_timeout",
            extra={"operation": operation, "timeout_seconds": timeout},
        )
        raise TransientStoreError(f"{operation} timed out") from exc
    except httpx.TransportError as exc:
        logger.warning(
            "store_call_unreachable",
            extra={"operation": operation, "error_message": str(exc)},
        )
        raise TransientStoreError(f"{operation} failed: store unreachable") from exc
    except APIError as exc:
        if exc.code == _UNIQUE_VIOLATION:
            raise ConflictError(f"{operation}: record already exists") from exc
        raise


def _point(call: Callable[[], T], operation: str) -> T:
    return _execute(call, timeout=settings.STORE_POINT_TIMEOUT_SECONDS, operation=operation)


def _scan(call: Callable[[], T], operation: str) -> T:
    return _execute(call, timeout=settings.STORE_SCAN_TIMEOUT_SECONDS, operation=operation)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Row <-> model mappers
# ---------------------------------------------------------------------------

def _user_from_row(row: dict[str, Any]) -> User:
    location = None
    if row.get("latitude") is not None and row.get("longitude") is not None:
        location = GeoPoint(latitude=row["latitude"], longitude=row["longitude"])
    return User(
        id=row["id"],
        username=row["username"],
        email=row["email"],
        password_hash=row["password_hash"],
        profile=Profile(
            first_name=row.get("first_name") or "",
            last_name=row.get("last_name") or "",
            date_of_birth=row.get("date_of_birth"),
            gender=row.get("gender") or "",
            bio=row.get("bio") or "",
            profile_pic_url=row.get("profile_pic_url") or "",
        ),
        preferences=Preferences(
            min_age=row["pref_min_age"],
            max_age=row["pref_max_age"],
            gender=row.get("pref_genders") or [],
        ),
        location=location,
        is_searching=row["is_searching"],
        current_link_id=row.get("current_link_id"),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _profile_columns(profile: Profile) -> dict[str, Any]:
    dob: date | None = profile.date_of_birth
    return {
        "first_name": profile.first_name,
        "last_name": profile.last_name,
        "date_of_birth": dob.isoformat() if dob else None,
        "gender": profile.gender,
        "bio": profile.bio,
        "profile_pic_url": profile.profile_pic_url,
    }


def _filter_params(filters: CandidateFilter, limit: int, randomize: bool) -> dict[str, Any]:
    earliest, latest = filters.birth_date_range
    return {
        "p_exclude_id": str(filters.exclude_id),
        "p_latitude": filters.near.latitude,
        "p_longitude": filters.near.longitude,
        "p_radius_m": filters.radius_m,
        "p_genders": list(filters.gender_in),
        "p_dob_earliest": earliest.isoformat(),
        "p_dob_latest": latest.isoformat(),
        "p_seeker_gender": filters.seeker_gender,
        "p_seeker_age": filters.seeker_age,
        "p_limit": limit,
        "p_random": randomize,
    }


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------

class SupabaseCandidateStore(CandidateStore):

    def __init__(self, client: Client) -> None:
        self._client = client

    def _users(self):
        return self._client.table("users")

    def _update_one(self, user_id: UUID, data: dict[str, Any], operation: str) -> User | None:
        data = {**data, "updated_at": _now_iso()}
        result = _point(
            lambda: self._users().update(data).eq("id", str(user_id)).execute(),
            operation,
        )
        return _user_from_row(result.data[0]) if result.data else None

    def create(self, username: str, email: str, password_hash: str) -> User:
        row = {"username": username, "email": email, "password_hash": password_hash}
        result = _point(lambda: self._users().insert(row).execute(), "create_user")
        return _user_from_row(result.data[0])

    def get_by_id(self, user_id: UUID) -> User | None:
        result = _point(
            lambda: self._users().select(_USER_COLUMNS).eq("id", str(user_id)).limit(1).execute(),
            "get_user",
        )
        return _user_from_row(result.data[0]) if result.data else None

    def get_by_email(self, email: str) -> User | None:
        result = _point(
            lambda: self._users().select(_USER_COLUMNS).eq("email", email).limit(1).execute(),
            "get_user_by_email",
        )
        return _user_from_row(result.data[0]) if result.data else None

    def update_account(
        self, user_id: UUID, username: str | None = None, email: str | None = None
    ) -> User | None:
        data = {k: v for k, v in (("username", username), ("email", email)) if v is not None}
        return self._update_one(user_id, data, "update_account")

    def update_profile(self, user_id: UUID, profile: Profile) -> User | None:
        return self._update_one(user_id, _profile_columns(profile), "update_profile")

    def update_preferences(self, user_id: UUID, preferences: Preferences) -> User | None:
        return self._update_one(
            user_id,
            {
                "pref_min_age": preferences.min_age,
                "pref_max_age": preferences.max_age,
                "pref_genders": preferences.gender,
            },
            "update_preferences",
        )

    def update_location(self, user_id: UUID, latitude: float, longitude: float) -> User | None:
        return self._update_one(
            user_id, {"latitude": latitude, "longitude": longitude}, "update_location"
        )

    def set_searching(self, user_id: UUID, is_searching: bool) -> bool:
        data = {"is_searching": is_searching, "updated_at": _now_iso()}

        def call():
            query = self._users().update(data).eq("id", str(user_id))
            if is_searching:
                query = query.is_("current_link_id", "null")
            return query.execute()

        return bool(_point(call, "set_searching").data)

    def claim_for_link(self, user_id: UUID, link_id: UUID) -> bool:
        data = {
            "is_searching": False,
            "current_link_id": str(link_id),
            "updated_at": _now_iso(),
        }
        result = _point(
            lambda: self._users()
            .update(data)
            .eq("id", str(user_id))
            .eq("is_searching", True)
            .is_("current_link_id", "null")
            .execute(),
            "claim_for_link",
        )
        return bool(result.data)

    def release_from_link(self, user_id: UUID, link_id: UUID) -> bool:
        data = {"is_searching": True, "current_link_id": None, "updated_at": _now_iso()}
        result = _point(
            lambda: self._users()
            .update(data)
            .eq("id", str(user_id))
            .eq("current_link_id", str(link_id))
            .execute(),
            "release_from_link",
        )
        return bool(result.data)

    def find_one(self, filters: CandidateFilter) -> User | None:
        params = _filter_params(filters, limit=1, randomize=True)
        result = _scan(
            lambda: self._client.rpc("find_match_candidates", params).execute(),
            "find_match_candidate",
        )
        return _user_from_row(result.data[0]) if result.data else None

    def find_many(self, filters: CandidateFilter, limit: int) -> list[User]:
        params = _filter_params(filters, limit=limit, randomize=False)
        result = _scan(
            lambda: self._client.rpc("find_match_candidates", params).execute(),
            "find_match_candidates",
        )
        return [_user_from_row(row) for row in result.data or []]


class SupabaseLinkStore(LinkStore):

    def __init__(self, client: Client) -> None:
        self._client = client

    def _links(self):
        return self._client.table("links")

    def create(
        self,
        user_a_id: UUID,
        user_b_id: UUID,
        *,
        link_id: UUID,
        created_at: datetime,
        expires_at: datetime,
    ) -> Link:
        row = {
            "id": str(link_id),
            "user_a_id": str(user_a_id),
            "user_b_id": str(user_b_id),
            "status": LinkStatus.pending.value,
            "created_at": created_at.isoformat(),
            "expires_at": expires_at.isoformat(),
        }
        result = _point(lambda: self._links().insert(row).execute(), "create_link")
        return Link(**result.data[0])

    def get_by_id(self, link_id: UUID) -> Link | None:
        result = _point(
            lambda: self._links().select("*").eq("id", str(link_id)).limit(1).execute(),
            "get_link",
        )
        return Link(**result.data[0]) if result.data else None

    def update_status(self, link_id: UUID, status: LinkStatus) -> Link | None:
        result = _point(
            lambda: self._links()
            .update({"status": status.value})
            .eq("id", str(link_id))
            .eq("status", LinkStatus.pending.value)
            .execute(),
            "update_link_status",
        )
        return Link(**result.data[0]) if result.data else None

    def expire_overdue(self, now: datetime) -> list[Link]:
        result = _scan(
            lambda: self._links()
            .update({"status": LinkStatus.expired.value})
            .eq("status", LinkStatus.pending.value)
            .lt("expires_at", now.isoformat())
            .execute(),
            "expire_overdue_links",
        )
        return [Link(**row) for row in result.data or []]

    def list_unreleased(self) -> list[Link]:
        released_statuses = [s.value for s in LinkStatus if s.releases_participants]
        result = _scan(
            lambda: self._links()
            .select("*")
            .in_("status", released_statuses)
            .is_("released_at", "null")
            .execute(),
            "list_unreleased_links",
        )
        return [Link(**row) for row in result.data or []]

    def mark_released(self, link_id: UUID, released_at: datetime) -> None:
        _point(
            lambda: self._links()
            .update({"released_at": released_at.isoformat()})
            .eq("id", str(link_id))
            .is_("released_at", "null")
            .execute(),
            "mark_link_released",
        )


class SupabaseChatroomStore(ChatroomStore):

    def __init__(self, client: Client) -> None:
        self._client = client

    def _chatrooms(self):
        return self._client.table("chatrooms")

    def _messages(self):
        return self._client.table("messages")

    def create(self, link_id: UUID, user_a_id: UUID, user_b_id: UUID) -> Chatroom:
        row = {
            "id": str(uuid4()),
            "link_id": str(link_id),
            "user_a_id": str(user_a_id),
            "user_b_id": str(user_b_id),
            "is_locked": True,
        }
        result = _point(lambda: self._chatrooms().insert(row).execute(), "create_chatroom")
        return Chatroom(**result.data[0])

    def get_by_id(self, chatroom_id: UUID) -> Chatroom | None:
        result = _point(
            lambda: self._chatrooms().select("*").eq("id", str(chatroom_id)).limit(1).execute(),
            "get_chatroom",
        )
        return Chatroom(**result.data[0]) if result.data else None

    def get_by_link_id(self, link_id: UUID) -> Chatroom | None:
        result = _point(
            lambda: self._chatrooms().select("*").eq("link_id", str(link_id)).limit(1).execute(),
            "get_chatroom_by_link",
        )
        return Chatroom(**result.data[0]) if result.data else None

    def set_locked(self, chatroom_id: UUID, is_locked: bool) -> Chatroom | None:
        result = _point(
            lambda: self._chatrooms()
            .update({"is_locked": is_locked, "updated_at": _now_iso()})
            .eq("id", str(chatroom_id))
            .execute(),
            "set_chatroom_locked",
        )
        return Chatroom(**result.data[0]) if result.data else None

    def append_message(self, chatroom_id: UUID, sender_id: UUID, content: str) -> Message:
        row = {
            "chatroom_id": str(chatroom_id),
            "sender_id": str(sender_id),
            "content": content,
        }
        result = _point(lambda: self._messages().insert(row).execute(), "append_message")
        return Message(**result.data[0])

    def list_messages(self, chatroom_id: UUID) -> list[Message]:
        result = _scan(
            lambda: self._messages()
            .select("id, chatroom_id, sender_id, content, created_at")
            .eq("chatroom_id", str(chatroom_id))
            .order("seq")
            .execute(),
            "list_messages",
        )
        return [Message(**row) for row in result.data or []]

    def count_messages(self, chatroom_id: UUID) -> int:
        result = _point(
            lambda: self._messages()
            .select("id", count="exact")
            .eq("chatroom_id", str(chatroom_id))
            .execute(),
            "count_messages",
        )
        return result.count or 0


def create_supabase_stores(client: Client | None = None) -> Stores:
    """Build the Supabase-backed stores on the shared client."""
    client = client or get_supabase()
    return Stores(
        candidates=SupabaseCandidateStore(client),
        links=SupabaseLinkStore(client),
        chatrooms=SupabaseChatroomStore(client),
    )
