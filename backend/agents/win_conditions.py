"""
Win Condition Evaluator.

Checks run strictly in this order after a round has been applied; the first
one satisfied ends the game:

  1. Pool depleted (newGlobalResources <= 0)           → Exploiters
  2. Exploiter profit >= yProfit                       → Exploiters
  3. Moderate profit / round thresholds                → Moderates
  4. Final round reached                               → Environmentalists if the pool survives, else Exploiters
  5. No active Exploiters                              → Environmentalists
  6. No active Environmentalists                       → Exploiters
  7. Otherwise the game continues (None)

The ordering is intentional: a round that empties the pool is an Exploiter
win even if the same round also eliminated every Exploiter.
"""
import math
from typing import Optional

from models.constants import MODERATE_WIN_THRESHOLDS
from models.game import Faction, Game, Role, RoundResult, WinOutcome


def faction_profit(game: Game, role: Role) -> int:
    return sum(game.players[pid].total_profit for pid in game.player_ids_with_role(role))


def moderate_thresholds_met(game: Game) -> bool:
    config = game.effective_config
    profit = faction_profit(game, Role.MODERATE)
    current_round = game.current_round

    high_profit = math.floor(config.y_profit * MODERATE_WIN_THRESHOLDS["PROFIT_HIGH"])
    low_profit = math.floor(config.y_profit * MODERATE_WIN_THRESHOLDS["PROFIT_LOW"])
    early_round = math.floor(config.x_rounds * MODERATE_WIN_THRESHOLDS["ROUNDS_LOW"])
    late_round = math.floor(config.x_rounds * MODERATE_WIN_THRESHOLDS["ROUNDS_HIGH"])

    return (
        (profit >= high_profit and current_round >= early_round)
        or (profit >= low_profit and current_round >= late_round)
    )


def evaluate_win_conditions(game: Game, result: RoundResult) -> Optional[WinOutcome]:
    """`game` must already have `result` applied (see apply_round_result)."""
    config = game.effective_config

    if result.new_global_resources <= 0:
        return WinOutcome(winner=Faction.EXPLOITERS, reason="Global resources depleted", rule=1)

    if faction_profit(game, Role.EXPLOITER) >= config.y_profit:
        return WinOutcome(winner=Faction.EXPLOITERS, reason="Exploiters reached the profit target", rule=2)

    if moderate_thresholds_met(game):
        return WinOutcome(winner=Faction.MODERATES, reason="Moderates reached their profit target", rule=3)

    if game.current_round >= config.x_rounds:
        if result.new_global_resources > 0:
            return WinOutcome(
                winner=Faction.ENVIRONMENTALISTS,
                reason="Resources survived every round",
                rule=4,
            )
        return WinOutcome(winner=Faction.EXPLOITERS, reason="Resources depleted on the final round", rule=4)

    if not game.player_ids_with_role(Role.EXPLOITER, active_only=True):
        return WinOutcome(winner=Faction.ENVIRONMENTALISTS, reason="All Exploiters eliminated", rule=5)

    if not game.player_ids_with_role(Role.ENVIRONMENTALIST, active_only=True):
        return WinOutcome(winner=Faction.EXPLOITERS, reason="All Environmentalists eliminated", rule=6)

    return None
