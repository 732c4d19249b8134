"""
Game constants for the card table.

Values that operators may tune come from config.py (environment-aware);
the rest are fixed by the rules of the table.
"""

from config import config


# =============================================================================
# Board
# =============================================================================

BOARD_SIZE = 4                      # Locations per player board, indexed 0..3


# =============================================================================
# Zones & Actions
# =============================================================================

STARTER_DECK_SIZE = config.STARTER_DECK_SIZE
MIN_DRAW = 1
MAX_DRAW = 5

MIN_PLAYERS_TO_START = 2

# Power track
MAX_POWER = 50
MAX_POWER_STEP = 10


# =============================================================================
# Room limits
# =============================================================================

ACTION_LOG_CAP = config.ACTION_LOG_CAP
CHAT_HISTORY_CAP = config.CHAT_HISTORY_CAP
CHAT_MAX_LENGTH = 300
CHARACTER_ID_MAX_LENGTH = 40
ROOM_CODE_LENGTH = config.ROOM_CODE_LENGTH

# Actor ids in log lines are shortened to this many chars when the actor left
ACTOR_ID_FALLBACK_LENGTH = 6

SYSTEM_PLAYER_ID = "system"
SYSTEM_PLAYER_NAME = "System"


def is_location_index(value: object) -> bool:
    """Check that a value is an integer board index (bools excluded)."""
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < BOARD_SIZE
