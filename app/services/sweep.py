"""Expiration sweep orchestration.

Wraps ``LinkLifecycleManager.run_expiration_sweep`` with the in-process
sweep lock and run-level logging.  Called by the scheduler every
``SWEEP_INTERVAL_SECONDS`` and by the manual trigger endpoint.  A failed
run is logged and reported; the next tick simply tries again.
"""

from __future__ import annotations

import logging
import time
from typing import Any
from uuid import uuid4

from app.scheduler.lock import acquire_sweep_lock, release_sweep_lock
from app.services.links import get_link_manager

logger = logging.getLogger(__name__)


def run_sweep(trigger: str = "scheduler") -> dict[str, Any]:
    """Run one expiration sweep.

    Parameters
    ----------
    trigger:
        Either "scheduler" or "manual" -- logged for observability.

    Returns
    -------
    Dict with the run summary, or a skip / failure marker.
    """
    run_id = uuid4()

    if not acquire_sweep_lock(run_id):
        logger.warning(
            "Sweep already running, skipping trigger",
            extra={"run_id": str(run_id), "trigger": trigger},
        )
        return {"run_id": str(run_id), "status": "skipped", "reason": "sweep_already_running"}

    start_time = time.time()
    try:
        summary = get_link_manager().run_expiration_sweep()
        duration_ms = int((time.time() - start_time) * 1000)
        status = "partial" if summary["failed"] else "success"

        # Quiet ticks are the norm; only log runs that changed something.
        level = logging.INFO if summary["expired"] or summary["released"] or summary["failed"] else logging.DEBUG
        logger.log(
            level,
            "sweep_complete",
            extra={
                "run_id": str(run_id),
                "trigger": trigger,
                "status": status,
                "duration_ms": duration_ms,
                **summary,
            },
        )
        return {"run_id": str(run_id), "status": status, "duration_ms": duration_ms, **summary}

    except Exception as exc:
        duration_ms = int((time.time() - start_time) * 1000)
        logger.error(
            "sweep_error",
            extra={
                "run_id": str(run_id),
                "trigger": trigger,
                "error": str(exc),
            },
            exc_info=True,
        )
        return {
            "run_id": str(run_id),
            "status": "failed",
            "error": str(exc),
            "duration_ms": duration_ms,
        }

    finally:
        release_sweep_lock()
