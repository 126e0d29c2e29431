"""Application constants.

Matching thresholds and chatroom policy values.  These are fixed per
deployment; change them here if the product rules evolve.
"""

# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------
MATCH_RADIUS_METERS: float = 200.0
MATCH_CLAIM_ATTEMPTS: int = 3
DEFAULT_SEARCH_LIMIT: int = 20
MAX_SEARCH_LIMIT: int = 100

EARTH_RADIUS_M: float = 6_371_000.0

# ---------------------------------------------------------------------------
# Profile / preference bounds
# ---------------------------------------------------------------------------
MIN_USER_AGE: int = 18
MAX_USER_AGE: int = 120

# ---------------------------------------------------------------------------
# Chatroom policy
# Each side may send one teaser message before a proximity unlock.
# ---------------------------------------------------------------------------
LOCKED_MESSAGE_LIMIT: int = 2
MAX_MESSAGE_LENGTH: int = 2000
