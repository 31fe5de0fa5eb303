"""
Extraction Ledger: per-round extraction submissions.

Each player writes only their own path (roundSubmissions/round_N/<playerId>),
so simultaneous submissions never conflict. A player may resubmit freely until
the host resolves the round.
"""
import logging
from typing import Any, Dict, List, Optional

from models.errors import (
    InvalidAmount, InvalidPhase, PlayerInactive, PlayerJailed, PlayerNotFound,
)
from models.game import Game, GameStatus, Phase
from services.document_store import StoreBacked, game_path, load_game

logger = logging.getLogger(__name__)


def is_valid_amount(amount: Any) -> bool:
    return isinstance(amount, int) and not isinstance(amount, bool) and amount >= 0


def all_players_submitted(game: Game) -> bool:
    """True once every eligible (active, not jailed) player has a submission this round."""
    eligible = set(game.eligible_player_ids())
    submitted = set(game.submissions())
    return bool(eligible) and eligible == submitted


def pending_players(game: Game) -> List[str]:
    submitted = game.submissions()
    return [pid for pid in game.eligible_player_ids() if pid not in submitted]


def get_player_extraction(
    game: Game, player_id: str, round_number: Optional[int] = None
) -> Optional[int]:
    return game.submissions(round_number).get(player_id)


def submission_updates(game: Game, player_id: str, amount: int) -> Dict[str, Any]:
    """Validate a submission against the snapshot and return the write for it."""
    if game.status != GameStatus.IN_PROGRESS or game.current_phase != Phase.EXTRACTION:
        raise InvalidPhase("Game is not in extraction phase")

    player = game.players.get(player_id)
    if player is None:
        raise PlayerNotFound(player_id)
    if player.is_jailed:
        raise PlayerJailed("Cannot submit: player is jailed")
    if not player.is_active:
        raise PlayerInactive("Cannot submit: player has been eliminated")
    if not is_valid_amount(amount):
        raise InvalidAmount(f"Extraction must be a non-negative integer, got {amount!r}")

    if amount > game.state.global_resources:
        # Soft bound only; resolution clamps the pool at zero.
        logger.warning(
            "[%s] %s extracting %d with only %d in the pool",
            game.id, player_id, amount, game.state.global_resources,
        )

    return {game_path(game.id, "roundSubmissions", game.round_key, player_id): amount}


class ExtractionLedger(StoreBacked):

    async def submit(self, game_id: str, player_id: str, amount: int) -> None:
        game = await load_game(self.store, game_id)
        updates = submission_updates(game, player_id, amount)
        await self.store.patch(updates)
        logger.info(f"[{game_id}] {player_id} submitted extraction for {game.round_key}")


# Module-level singleton
extraction_ledger = ExtractionLedger()
