"""
Game tunables.

Canonical values are tuned for a 6-player table. FALLBACK_VALUES fill in any
config field missing from a stored document (older games, partial writes).
"""
from typing import Dict

REQUIRED_PLAYER_COUNT = 6
MIN_PLAYERS = 2

ROLE_DISTRIBUTION_6_PLAYER: Dict[str, int] = {
    "Exploiter": 2,
    "Environmentalist": 3,
    "Moderate": 1,
}

DEFAULT_X_ROUNDS = 17
DEFAULT_Y_PROFIT = 408
DEFAULT_STARTING_GLOBAL_RESOURCES = 714
DEFAULT_RESOURCES_PER_ROUND = 18
DEFAULT_STARTING_RESOURCES = 10

MAX_ARRESTS_BEFORE_ELIMINATION = 2

# Per-player "issue card" fee drawn every round (inclusive range)
EVENT_FEE_MIN = 0
EVENT_FEE_MAX = 10

MODERATE_WIN_THRESHOLDS: Dict[str, float] = {
    "PROFIT_HIGH": 0.75,
    "PROFIT_LOW": 0.5,
    "ROUNDS_HIGH": 0.75,
    "ROUNDS_LOW": 0.5,
}

# Role ratios for tables of 7+ players
ROLE_RATIOS_SCALING: Dict[str, float] = {
    "EXPLOITERS": 0.33,
    "MODERATES": 0.17,
}

FALLBACK_VALUES: Dict[str, int] = {
    "X_ROUNDS": 20,
    "Y_PROFIT": 500,
    "STARTING_GLOBAL_RESOURCES": 1000,
    "RESOURCES_PER_ROUND": 18,
    "STARTING_RESOURCES": 10,
}


def minimum_resource_threshold(round_number: int) -> int:
    """Resources a player must keep after round `round_number` to stay in the game.

    threshold(1) = 0, threshold(r) = 2·(r−1) + 1 afterwards.
    """
    if round_number <= 1:
        return 0
    return 2 * (round_number - 1) + 1
