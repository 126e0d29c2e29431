"""Link endpoints: read, respond, chatroom lookup, manual sweep."""

from __future__ import annotations

import logging
import threading
from typing import Any
from uuid import UUID

from fastapi import APIRouter, HTTPException

from app.models.chat import Chatroom
from app.models.link import Link, LinkResponseRequest, LinkResponseResult
from app.scheduler.lock import get_current_run_id, is_sweep_running
from app.services.links import get_link_manager
from app.services.sweep import run_sweep

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/users/{user_id}/links/{link_id}", response_model=Link)
def get_link(user_id: UUID, link_id: UUID) -> Link:
    return get_link_manager().get_link(user_id, link_id)


@router.post("/users/{user_id}/links/{link_id}/respond", response_model=LinkResponseResult)
def respond_to_link(user_id: UUID, link_id: UUID, payload: LinkResponseRequest) -> LinkResponseResult:
    """Accept or reject a pending link.  409 if it is already resolved."""
    return get_link_manager().respond_to_link(user_id, link_id, payload.accept)


@router.get("/users/{user_id}/links/{link_id}/chatroom", response_model=Chatroom)
def get_link_chatroom(user_id: UUID, link_id: UUID) -> Chatroom:
    return get_link_manager().get_chatroom_for_link(user_id, link_id)


@router.post("/links/sweep", status_code=202)
def trigger_sweep() -> dict[str, Any]:
    """Run an expiration sweep now, in the background.

    Returns 202 if the sweep starts, 409 if one is already running.
    """
    if is_sweep_running():
        current_run = get_current_run_id()
        raise HTTPException(
            status_code=409,
            detail="Sweep already in progress",
            headers={"X-Current-Run-Id": str(current_run) if current_run else "unknown"},
        )

    thread = threading.Thread(target=run_sweep, kwargs={"trigger": "manual"}, daemon=True)
    thread.start()

    return {"status": "started", "message": "Expiration sweep initiated"}
