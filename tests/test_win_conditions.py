"""Unit tests for the ordered win-condition checks."""

from agents.round_resolver import apply_round_result, calculate_round_result, resolve_round
from agents.win_conditions import evaluate_win_conditions
from models.game import Faction, Game, GameStatus, RoundResult


SIX = {
    "E1": "Exploiter",
    "E2": "Exploiter",
    "V1": "Environmentalist",
    "V2": "Environmentalist",
    "V3": "Environmentalist",
    "M1": "Moderate",
}


def _result(new_global: int) -> RoundResult:
    return RoundResult(total_extraction=0, new_global_resources=new_global)


def _game(game_doc, players=None, **kwargs) -> Game:
    return Game.from_document("G", game_doc(SIX, players, phase="action", **kwargs))


def test_game_continues(game_doc):
    assert evaluate_win_conditions(_game(game_doc), _result(100)) is None


def test_pool_depleted_exploiters_win(game_doc):
    outcome = evaluate_win_conditions(_game(game_doc), _result(0))
    assert outcome.winner == Faction.EXPLOITERS
    assert outcome.rule == 1


def test_depletion_beats_exploiter_elimination(game_doc):
    # Pool empties on the same round every Exploiter is eliminated
    players = {"E1": {"status": "inactive"}, "E2": {"status": "inactive"}}
    game = Game.from_document(
        "G",
        game_doc(
            SIX, players,
            global_resources=60,
            config={"resourcesPerRound": 0},
            submissions={"E1": 30, "E2": 30},
        ),
    )
    result = calculate_round_result(game, game.submissions(), "s1")
    assert result.new_global_resources == 0
    outcome = evaluate_win_conditions(apply_round_result(game, result), result)
    assert outcome.winner == Faction.EXPLOITERS
    assert outcome.rule == 1


def test_depletion_and_profit_target_same_round_is_rule_one(game_doc):
    # Exploiters are at the profit target and their extraction drains the pool
    players = {"E1": {"totalProfit": 400}, "E2": {"totalProfit": 8}}
    game = Game.from_document(
        "G",
        game_doc(
            SIX, players,
            global_resources=60,
            config={"resourcesPerRound": 0},
            submissions={"E1": 30, "E2": 30, "V1": 0, "V2": 0, "V3": 0, "M1": 0},
        ),
    )
    result, applied, outcome = resolve_round(game)
    assert result.new_global_resources == 0
    assert sum(applied.players[pid].total_profit for pid in ("E1", "E2")) >= 408
    assert outcome.winner == Faction.EXPLOITERS
    assert outcome.rule == 1
    assert applied.status == GameStatus.FINISHED
    assert applied.state.winner == "Exploiters"

    # Same profits with the pool intact fall through to the profit rule
    assert evaluate_win_conditions(applied, _result(5)).rule == 2


def test_exploiter_profit_target(game_doc):
    players = {"E1": {"totalProfit": 200}, "E2": {"totalProfit": 208}}
    outcome = evaluate_win_conditions(_game(game_doc, players), _result(100))
    assert outcome.winner == Faction.EXPLOITERS
    assert outcome.rule == 2


def test_exploiter_profit_counts_eliminated_exploiters(game_doc):
    players = {"E1": {"totalProfit": 400, "status": "inactive"}, "E2": {"totalProfit": 8}}
    outcome = evaluate_win_conditions(_game(game_doc, players), _result(100))
    assert outcome.rule == 2


def test_moderate_high_profit_mid_game(game_doc):
    # floor(0.75 * 408) = 306 profit, floor(0.5 * 17) = 8 rounds
    players = {"M1": {"totalProfit": 306}}
    assert evaluate_win_conditions(
        _game(game_doc, players, current_round=7), _result(100)
    ) is None
    outcome = evaluate_win_conditions(_game(game_doc, players, current_round=8), _result(100))
    assert outcome.winner == Faction.MODERATES
    assert outcome.rule == 3


def test_moderate_low_profit_late_game(game_doc):
    # floor(0.5 * 408) = 204 profit, floor(0.75 * 17) = 12 rounds
    players = {"M1": {"totalProfit": 204}}
    assert evaluate_win_conditions(
        _game(game_doc, players, current_round=11), _result(100)
    ) is None
    outcome = evaluate_win_conditions(_game(game_doc, players, current_round=12), _result(100))
    assert outcome.winner == Faction.MODERATES


def test_final_round_environmentalists_win(game_doc):
    outcome = evaluate_win_conditions(_game(game_doc, current_round=17), _result(50))
    assert outcome.winner == Faction.ENVIRONMENTALISTS
    assert outcome.rule == 4


def test_all_exploiters_eliminated(game_doc):
    players = {"E1": {"status": "inactive"}, "E2": {"status": "inactive"}}
    outcome = evaluate_win_conditions(_game(game_doc, players, current_round=3), _result(100))
    assert outcome.winner == Faction.ENVIRONMENTALISTS
    assert outcome.rule == 5


def test_all_environmentalists_eliminated(game_doc):
    players = {pid: {"status": "inactive"} for pid in ("V1", "V2", "V3")}
    outcome = evaluate_win_conditions(_game(game_doc, players, current_round=3), _result(100))
    assert outcome.winner == Faction.EXPLOITERS
    assert outcome.rule == 6


def test_exploiter_profit_beats_moderate_win(game_doc):
    players = {"E1": {"totalProfit": 408}, "M1": {"totalProfit": 400}}
    outcome = evaluate_win_conditions(_game(game_doc, players, current_round=16), _result(100))
    assert outcome.rule == 2
