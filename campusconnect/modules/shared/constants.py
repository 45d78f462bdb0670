"""
Fixed rules of the progression core.

Tunable values (flat-rate rewards, default missions, limits) live in
`config/progression.yaml` and are read through ConfigManager; the values
here are either structural or used as fallbacks when a key is missing.
"""

# ============================================================================
# LEVELING
# ============================================================================

XP_PER_LEVEL = 100
MIN_LEVEL = 1
MIN_XP = 0

# ============================================================================
# FLAT-RATE REWARDS (fallbacks for progression.rewards.*)
# ============================================================================

DEFAULT_COLLEGE_VIEW_XP = 5
DEFAULT_SESSION_BOOKING_XP = 15

# ============================================================================
# LIMITS
# ============================================================================

MAX_USER_ID_LENGTH = 64
MAX_FULL_NAME_LENGTH = 120
MAX_REFERENCE_ID_LENGTH = 64
MAX_MISSION_TEXT_LENGTH = 200
MAX_XP_DELTA = 1_000_000

DEFAULT_RECENTLY_VIEWED_LIMIT = 5
DEFAULT_XP_HISTORY_LIMIT = 20
DEFAULT_LEADERBOARD_LIMIT = 10
MAX_LEADERBOARD_LIMIT = 100
LEADERBOARD_TOP_BADGES = 3
