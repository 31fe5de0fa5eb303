"""
Game Master: Pure deterministic Python.

Responsibilities:
- Lobby: create a game, let players join
- Start: assign roles, write config and the first round in one patch
- Phase transitions (Extraction → Action → Extraction of next round | Finished)
- Round processing: resolve, apply, evaluate win conditions, write atomically

Only the host may call the phase-mutating methods. Every method reads a fresh
snapshot, validates, and writes one patch; nothing is cached between calls.
"""
import logging
import random
import secrets
import time
import uuid
from typing import Any, Callable, Dict, Optional, Tuple

from agents.arrest_vote import clear_action_phase_updates
from agents.extraction_ledger import all_players_submitted, pending_players
from agents.role_assigner import role_assigner
from agents.round_resolver import resolve_round, round_updates
from config import settings
from models.constants import MIN_PLAYERS, REQUIRED_PLAYER_COUNT
from models.errors import (
    InsufficientPlayers, InvalidCredentials, InvalidPhase, NotHost, PlayerNotFound,
    SubmissionsIncomplete,
)
from models.game import (
    Game, GameConfig, GameState, GameStatus, Phase, Player, PlayerStatus,
    PrivatePlayerInfo, RoundResult, _utcnow,
)
from services.document_store import DocumentStore, StoreBacked, game_path, load_game
from utils.rng import make_round_seed

logger = logging.getLogger(__name__)


class GameMaster(StoreBacked):
    """
    Deterministic game lifecycle engine.
    All methods read/patch the shared game document via the DocumentStore.
    """

    def __init__(
        self,
        store: Optional[DocumentStore] = None,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
    ):
        super().__init__(store)
        self.clock = clock
        self.rng = rng

    @staticmethod
    def require_host(caller_id: str, game: Game) -> None:
        if not caller_id or caller_id != game.actual_host_id:
            raise NotHost(f"Only the host can do this in game {game.id}")

    @staticmethod
    def authenticate(game: Game, player_id: str, token: Optional[str]) -> None:
        """The caller proves it is `player_id` with the token issued at create/join."""
        if player_id not in game.players:
            raise PlayerNotFound(player_id)
        expected = game.player_tokens.get(player_id)
        if not expected or not token or not secrets.compare_digest(expected, token):
            raise InvalidCredentials(f"Bad or missing token for player {player_id}")

    # ── Lobby ──────────────────────────────────────────────────────────────────

    async def create_game(self, host_name: str) -> Tuple[str, str, str]:
        """Create a lobby with the caller as host. Returns (game_id, host_player_id, token)."""
        game_id = str(uuid.uuid4())[:8].upper()
        host_id = str(uuid.uuid4())
        token = secrets.token_urlsafe(16)
        now = _utcnow().isoformat()
        game = Game(
            id=game_id,
            host_id=host_id,
            players={host_id: Player(name=host_name, is_host=True, joined_at=now)},
            player_tokens={host_id: token},
            created_at=now,
        )
        doc = game.to_document()
        doc.pop("id", None)
        await self.store.patch({game_path(game_id): doc})
        logger.info(f"[{game_id}] Created by host {host_id} ({host_name})")
        return game_id, host_id, token

    async def join_game(self, game_id: str, player_name: str) -> Tuple[str, str]:
        """Returns (player_id, token)."""
        game = await load_game(self.store, game_id)
        if game.status != GameStatus.WAITING:
            raise InvalidPhase("Game has already started")

        player_id = str(uuid.uuid4())
        token = secrets.token_urlsafe(16)
        player = Player(name=player_name, joined_at=_utcnow().isoformat())
        await self.store.patch({
            game_path(game_id, "players", player_id): player.to_document(),
            game_path(game_id, "playerTokens", player_id): token,
        })
        logger.info(f"[{game_id}] {player_name} joined ({len(game.players) + 1} players)")
        return player_id, token

    # ── Start ──────────────────────────────────────────────────────────────────

    async def start_game(
        self, game_id: str, host_id: str, config: Optional[GameConfig] = None
    ) -> GameConfig:
        """
        Assign roles and open round 1. Roles, config, the starting pool, the
        first round seed and every player's starting resources are written in
        one patch, so no client ever sees a half-started game.
        """
        game = await load_game(self.store, game_id)
        self.require_host(host_id, game)
        if game.status != GameStatus.WAITING:
            raise InvalidPhase("Game has already started")

        n = len(game.players)
        if settings.enforce_player_count and n != REQUIRED_PLAYER_COUNT:
            raise InsufficientPlayers(f"Need exactly {REQUIRED_PLAYER_COUNT} players, have {n}")
        if n < MIN_PLAYERS:
            raise InsufficientPlayers(f"Need at least {MIN_PLAYERS} players, have {n}")

        config = config or GameConfig.canonical()
        roles = role_assigner.assign_roles(sorted(game.players), self.rng)
        state = GameState(
            current_round=1,
            current_phase=Phase.EXTRACTION,
            global_resources=config.starting_global_resources,
            round_seed=make_round_seed(game_id, 1, self.clock),
        )

        updates: Dict[str, Any] = {
            game_path(game_id, "status"): GameStatus.IN_PROGRESS.value,
            game_path(game_id, "config"): config.to_document(),
            game_path(game_id, "gameState"): state.to_document(),
        }
        for pid in game.players:
            base = ("players", pid)
            updates[game_path(game_id, *base, "resources")] = config.starting_resources
            updates[game_path(game_id, *base, "totalProfit")] = 0
            updates[game_path(game_id, *base, "timesArrested")] = 0
            updates[game_path(game_id, *base, "isJailed")] = False
            updates[game_path(game_id, *base, "status")] = PlayerStatus.ACTIVE.value
            updates[game_path(game_id, "privatePlayerInfo", pid)] = (
                PrivatePlayerInfo(role=roles[pid]).to_document()
            )

        await self.store.patch(updates)
        logger.info(
            f"[{game_id}] Game started: {n} players, {config.x_rounds} rounds, "
            f"pool {config.starting_global_resources}"
        )
        return config

    # ── Round processing ───────────────────────────────────────────────────────

    async def process_round(self, game_id: str, host_id: str) -> RoundResult:
        """
        Extraction → Action. Resolve the current round with the stored seed,
        apply it, evaluate win conditions and write everything in one patch.
        """
        game = await load_game(self.store, game_id)
        self.require_host(host_id, game)
        if game.status != GameStatus.IN_PROGRESS or game.current_phase != Phase.EXTRACTION:
            raise InvalidPhase("Round can only be processed during extraction")
        if not all_players_submitted(game):
            raise SubmissionsIncomplete(
                f"Waiting on {', '.join(pending_players(game)) or 'eligible players'}"
            )

        result, applied, outcome = resolve_round(game)
        await self.store.patch(round_updates(game_id, game, applied))

        logger.info(
            f"[{game_id}] Round {game.current_round} processed: extracted "
            f"{result.total_extraction}, pool {game.state.global_resources} → "
            f"{result.new_global_resources}"
        )
        eliminated = [
            pid for pid, p in applied.players.items()
            if not p.is_active and game.players[pid].is_active
        ]
        if eliminated:
            logger.info(f"[{game_id}] Eliminated: {', '.join(sorted(eliminated))}")
        if outcome is not None:
            logger.info(f"[{game_id}] Game over: {outcome.winner.value} win (rule {outcome.rule}: {outcome.reason})")
        return result

    # ── Phase transitions ──────────────────────────────────────────────────────

    async def advance_phase(self, game_id: str, host_id: str) -> Optional[int]:
        """
        Action → next round's Extraction, or Finished after the last round.
        Returns the new round number, or None if the game finished.
        """
        game = await load_game(self.store, game_id)
        self.require_host(host_id, game)
        if game.status != GameStatus.IN_PROGRESS or game.current_phase != Phase.ACTION:
            raise InvalidPhase("Can only advance from the action phase of a running game")

        current_round = game.current_round
        if current_round >= game.effective_config.x_rounds:
            await self.store.patch({game_path(game_id, "status"): GameStatus.FINISHED.value})
            logger.info(f"[{game_id}] Final round {current_round} complete: game finished")
            return None

        next_round = current_round + 1
        updates: Dict[str, Any] = {
            game_path(game_id, "gameState", "currentRound"): next_round,
            game_path(game_id, "gameState", "currentPhase"): Phase.EXTRACTION.value,
            game_path(game_id, "gameState", "roundSeed"): make_round_seed(game_id, next_round, self.clock),
            game_path(game_id, "gameState", "revealedExtraction"): None,
            game_path(game_id, "gameState", "roundFees"): None,
        }
        updates.update(clear_action_phase_updates(game_id))
        # Jail lasts for the rest of the round it was imposed in
        for pid, player in game.players.items():
            if player.is_jailed:
                updates[game_path(game_id, "players", pid, "isJailed")] = False

        await self.store.patch(updates)
        logger.info(f"[{game_id}] Round {current_round} → {next_round} (extraction)")
        return next_round


# Module-level singleton
game_master = GameMaster()
