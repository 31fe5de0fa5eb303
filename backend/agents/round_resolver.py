"""
Round Resolver: pure round computation, application and verification.

Everything here works on snapshots and returns values; nothing touches the
store. The host uses it to write a round, and any other client uses the same
functions to recompute the round and check what the host wrote.

Draw order is part of the contract: one fee per submitting player in sorted
player-id order, then one pick (over the same sorted ids) for the revealed
submission, all from a single SeededRandom built from gameState.roundSeed.
"""
import logging
from typing import Any, Dict, Optional, Tuple

from agents.win_conditions import evaluate_win_conditions
from models.constants import (
    EVENT_FEE_MAX,
    EVENT_FEE_MIN,
    MAX_ARRESTS_BEFORE_ELIMINATION,
    minimum_resource_threshold,
)
from models.game import (
    Game, GameState, GameStatus, Phase, PlayerStatus, RoundResult,
    VerificationReport, WinOutcome,
)
from services.document_store import game_path
from utils.rng import SeededRandom, fallback_round_seed

logger = logging.getLogger(__name__)


def round_seed_for(game: Game) -> str:
    return game.state.round_seed or fallback_round_seed(game.id, game.current_round)


def calculate_round_result(
    game: Game, submissions: Dict[str, int], seed: str
) -> RoundResult:
    """
    Compute a round from its submissions. Deterministic in (game, submissions, seed).

    Net reward per player is their own extraction minus a random fee and may
    be negative; clamping happens in apply_round_result.
    """
    ordered = sorted(submissions)
    total_extraction = sum(submissions[pid] for pid in ordered)
    config = game.effective_config
    new_global = max(0, game.state.global_resources - total_extraction) + config.resources_per_round

    rng = SeededRandom(seed)
    fees: Dict[str, int] = {}
    rewards: Dict[str, int] = {}
    for pid in ordered:
        fees[pid] = rng.randint(EVENT_FEE_MIN, EVENT_FEE_MAX)
        rewards[pid] = submissions[pid] - fees[pid]

    revealed_id = rng.pick(ordered)
    return RoundResult(
        total_extraction=total_extraction,
        new_global_resources=new_global,
        player_rewards=rewards,
        round_fees=fees,
        revealed_extraction=submissions[revealed_id] if revealed_id is not None else None,
    )


def apply_round_result(game: Game, result: RoundResult) -> Game:
    """Return a copy of `game` with the round applied. The input is never mutated."""
    applied = game.model_copy(deep=True)
    threshold = minimum_resource_threshold(game.current_round)

    for pid, net in result.player_rewards.items():
        player = applied.players.get(pid)
        if player is None:
            continue
        player.resources = max(0, player.resources + net)
        player.total_profit += max(0, net)
        if player.resources < threshold or player.times_arrested >= MAX_ARRESTS_BEFORE_ELIMINATION:
            player.status = PlayerStatus.INACTIVE

    state = applied.game_state or GameState()
    state.current_phase = Phase.ACTION
    state.global_resources = result.new_global_resources
    state.round_fees = dict(result.round_fees)
    state.revealed_extraction = result.revealed_extraction
    applied.game_state = state
    return applied


def resolve_round(game: Game) -> Tuple[RoundResult, Game, Optional[WinOutcome]]:
    """Full host computation for the current round: result, post-round game, outcome."""
    result = calculate_round_result(game, game.submissions(), round_seed_for(game))
    applied = apply_round_result(game, result)
    outcome = evaluate_win_conditions(applied, result)
    if outcome is not None:
        applied.status = GameStatus.FINISHED
        applied.state.winner = outcome.winner.value
    return result, applied, outcome


def _round_fields(before: Game, after: Game) -> Dict[str, Any]:
    """Relative path → value for everything processing a round writes."""
    state = after.state
    fields: Dict[str, Any] = {
        "gameState/currentPhase": state.current_phase.value if state.current_phase else None,
        "gameState/globalResources": state.global_resources,
        "gameState/roundFees": dict(state.round_fees),
        "gameState/revealedExtraction": state.revealed_extraction,
    }
    for pid in sorted(before.submissions()):
        player = after.players.get(pid)
        if player is None:
            continue
        fields[f"players/{pid}/resources"] = player.resources
        fields[f"players/{pid}/totalProfit"] = player.total_profit
        fields[f"players/{pid}/status"] = player.status.value
    if after.status == GameStatus.FINISHED:
        fields["status"] = after.status.value
        fields["gameState/winner"] = state.winner
    return fields


def round_updates(game_id: str, before: Game, after: Game) -> Dict[str, Any]:
    """Patch that turns the `before` snapshot into `after` (as built by resolve_round)."""
    return {
        game_path(game_id, *path.split("/")): value
        for path, value in _round_fields(before, after).items()
    }


def verify_round_calculation(game: Game, host_result: RoundResult) -> VerificationReport:
    """
    Recompute the current round from stored submissions and seed and compare
    it with what the host reports. Never raises; mismatches are returned.
    """
    mine = calculate_round_result(game, game.submissions(), round_seed_for(game))
    report = VerificationReport(game_id=game.id, round=game.current_round)

    def check(field: str, expected: Any, actual: Any) -> None:
        if expected != actual:
            report.mismatches[field] = {"expected": expected, "actual": actual}

    check("totalExtraction", mine.total_extraction, host_result.total_extraction)
    check("newGlobalResources", mine.new_global_resources, host_result.new_global_resources)
    check("revealedExtraction", mine.revealed_extraction, host_result.revealed_extraction)
    for pid in sorted(set(mine.player_rewards) | set(host_result.player_rewards)):
        check(f"playerRewards/{pid}", mine.player_rewards.get(pid), host_result.player_rewards.get(pid))
    for pid in sorted(set(mine.round_fees) | set(host_result.round_fees)):
        check(f"roundFees/{pid}", mine.round_fees.get(pid), host_result.round_fees.get(pid))

    if not report.ok:
        logger.warning(f"[{game.id}] Round {game.current_round} calculation mismatch: {report.mismatches}")
    return report


def verify_written_round(before: Game, after: Game) -> VerificationReport:
    """
    Compare what the host wrote (`after`, first snapshot past extraction) with
    what it should have written given the last extraction snapshot (`before`).
    """
    _, expected, _ = resolve_round(before)
    want = _round_fields(before, expected)
    got = _round_fields(before, after)
    report = VerificationReport(game_id=before.id, round=before.current_round)

    for path in sorted(set(want) | set(got)):
        if want.get(path) != got.get(path):
            report.mismatches[path] = {"expected": want.get(path), "actual": got.get(path)}
    return report
