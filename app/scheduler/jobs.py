"""APScheduler job definitions and scheduler management.

Initializes a BackgroundScheduler with an IntervalTrigger that runs the
link expiration sweep, and provides start/shutdown/status helpers for the
FastAPI lifespan.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings
from app.services.sweep import run_sweep

logger = logging.getLogger(__name__)

# Module-level scheduler instance (singleton)
scheduler = BackgroundScheduler()


def _sweep_job() -> None:
    """Wrapper that APScheduler calls on each interval tick."""
    run_sweep(trigger="scheduler")


def start_scheduler() -> None:
    """Configure and start the background scheduler.

    One sweep at a time: overlapping ticks are dropped and missed ticks
    are coalesced into one.
    """
    scheduler.add_job(
        _sweep_job,
        IntervalTrigger(seconds=settings.SWEEP_INTERVAL_SECONDS),
        id="link_expiration_sweep",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info(
        "scheduler_started",
        extra={"interval_seconds": settings.SWEEP_INTERVAL_SECONDS},
    )


def shutdown_scheduler() -> None:
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("scheduler_stopped")


def is_scheduler_running() -> bool:
    """Check if the scheduler is currently running."""
    return scheduler.running
