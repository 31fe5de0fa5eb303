"""
Role Assignment: deterministic role counts, random permutation.

Responsibilities:
- Compute how many Exploiters / Environmentalists / Moderates a table gets
- Shuffle the roles so nobody can infer a role from join order
- Map every player id to exactly one role

Pure: persistence is the caller's job (GameMaster.start_game writes the
result into privatePlayerInfo in the same patch that starts the game).
"""
import logging
import math
import random
from typing import Dict, List, Optional, Sequence

from models.constants import ROLE_DISTRIBUTION_6_PLAYER, ROLE_RATIOS_SCALING
from models.errors import InsufficientPlayers
from models.game import Role

logger = logging.getLogger(__name__)


# (exploiters, environmentalists, moderates) for tables below the scaling rule
_SMALL_TABLES: Dict[int, tuple] = {
    1: (0, 0, 1),
    2: (1, 1, 0),
    3: (1, 1, 1),
    4: (1, 2, 1),
    5: (2, 2, 1),
    6: (
        ROLE_DISTRIBUTION_6_PLAYER["Exploiter"],
        ROLE_DISTRIBUTION_6_PLAYER["Environmentalist"],
        ROLE_DISTRIBUTION_6_PLAYER["Moderate"],
    ),
}


class RoleAssigner:
    """
    Assigns secret roles at game start.

    6 players is the canonical table (2 Exploiters, 3 Environmentalists,
    1 Moderate). Smaller tables degrade gracefully; 7+ scale by ratio.
    """

    @staticmethod
    def role_counts(n_players: int) -> Dict[Role, int]:
        if n_players <= 0:
            raise InsufficientPlayers(f"Cannot assign roles to {n_players} players")

        if n_players in _SMALL_TABLES:
            exploiters, environmentalists, moderates = _SMALL_TABLES[n_players]
        else:
            exploiters = max(1, math.floor(n_players * ROLE_RATIOS_SCALING["EXPLOITERS"]))
            moderates = max(1, math.floor(n_players * ROLE_RATIOS_SCALING["MODERATES"]))
            environmentalists = n_players - exploiters - moderates

        return {
            Role.EXPLOITER: exploiters,
            Role.ENVIRONMENTALIST: environmentalists,
            Role.MODERATE: moderates,
        }

    def generate_roles(
        self, n_players: int, rng: Optional[random.Random] = None
    ) -> List[Role]:
        roles: List[Role] = []
        for role, count in self.role_counts(n_players).items():
            roles.extend([role] * count)
        (rng or random).shuffle(roles)
        return roles

    def assign_roles(
        self, player_ids: Sequence[str], rng: Optional[random.Random] = None
    ) -> Dict[str, Role]:
        """Return {player_id: role}. Every id gets exactly one role."""
        if len(set(player_ids)) != len(player_ids):
            raise ValueError("player_ids must be unique")
        roles = self.generate_roles(len(player_ids), rng)
        assignment = dict(zip(player_ids, roles))
        logger.info(
            "Roles assigned to %d players: %s",
            len(player_ids),
            {role.value: count for role, count in self.role_counts(len(player_ids)).items()},
        )
        return assignment


# Module-level singleton
role_assigner = RoleAssigner()
