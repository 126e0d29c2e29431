"""Enum types mirroring PostgreSQL custom enums from the migrations."""

from enum import Enum


class LinkStatus(str, Enum):
    """Lifecycle status of a link.

    ``pending`` is the only non-terminal state.
    """
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"
    expired = "expired"

    @property
    def is_terminal(self) -> bool:
        return self is not LinkStatus.pending

    @property
    def releases_participants(self) -> bool:
        """Terminal states that put both participants back into the search pool."""
        return self in (LinkStatus.rejected, LinkStatus.expired)


class StoreBackend(str, Enum):
    """Persistence backend selected by ``settings.STORE_BACKEND``."""
    memory = "memory"
    supabase = "supabase"
