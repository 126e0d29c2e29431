"""Process-wide store selection.

``get_stores()`` lazily builds the backend named by
``settings.STORE_BACKEND`` and returns the same ``Stores`` on every call.
"""

from __future__ import annotations

import logging

from app.core.config import settings
from app.db.memory import create_memory_stores
from app.db.stores import Stores
from app.models.enums import StoreBackend

logger = logging.getLogger(__name__)

_stores: Stores | None = None


def get_stores() -> Stores:
    """Return the singleton stores, creating them on first call."""
    global _stores
    if _stores is None:
        backend = StoreBackend(settings.STORE_BACKEND.lower())
        if backend is StoreBackend.supabase:
            from app.db.supabase_stores import create_supabase_stores

            _stores = create_supabase_stores()
        else:
            _stores = create_memory_stores()
        logger.info("stores_initialized", extra={"backend": backend.value})
    return _stores


def set_stores(stores: Stores | None) -> None:
    """Replace the singleton (tests and seeding scripts)."""
    global _stores
    _stores = stores
