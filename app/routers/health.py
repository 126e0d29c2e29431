"""Health check endpoint.

Returns service status including store connectivity, scheduler state and
whether a sweep is in progress.
"""

import logging
from typing import Any

from fastapi import APIRouter
from starlette.responses import JSONResponse

from app.core.config import settings
from app.db.registry import get_stores
from app.scheduler.jobs import is_scheduler_running
from app.scheduler.lock import is_sweep_running

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health_check() -> Any:
    """Return 200 when the store answers, 503 when it does not."""
    store_status = "disconnected"

    try:
        if get_stores().ping():
            store_status = "connected"
    except Exception:
        logger.warning("Health check: store probe failed", exc_info=True)

    payload: dict[str, Any] = {
        "status": "ok" if store_status == "connected" else "degraded",
        "store": store_status,
        "backend": settings.STORE_BACKEND,
        "scheduler": "running" if is_scheduler_running() else "stopped",
        "sweep_in_progress": is_sweep_running(),
    }

    if store_status != "connected":
        return JSONResponse(status_code=503, content=payload)

    return payload
