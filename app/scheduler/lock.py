"""Sweep concurrency lock using threading.Lock.

Keeps a scheduled tick and a manual trigger from sweeping at the same
time inside one process.  Uses a non-blocking acquire -- if the lock is
already held, the caller gets False and can skip or return 409.
"""

from __future__ import annotations

import threading
from uuid import UUID

_sweep_lock = threading.Lock()
_current_run_id: UUID | None = None


def acquire_sweep_lock(run_id: UUID) -> bool:
    """Try to acquire the sweep lock for the given run.

    Returns True if the lock was acquired, False if already held.
    """
    global _current_run_id
    if _sweep_lock.acquire(blocking=False):
        _current_run_id = run_id
        return True
    return False


def release_sweep_lock() -> None:
    """Release the sweep lock.  Safe to call when it is not held."""
    global _current_run_id
    _current_run_id = None
    if _sweep_lock.locked():
        _sweep_lock.release()


def get_current_run_id() -> UUID | None:
    """Return the run_id of the sweep in progress, or None."""
    return _current_run_id


def is_sweep_running() -> bool:
    return _current_run_id is not None
