"""
Arrest & Investigation: action-phase protocol.

Responsibilities:
- Investigate: one peek per player per round at another player's extraction
- Nominate: open a single arrest vote against a non-jailed player
- Vote: one ballot per eligible player; auto-resolves at quorum
- Replant: move personal resources back into the shared pool

Every operation validates against a fresh snapshot, then writes one atomic
patch. Votes land on per-voter paths, so ballots cast at the same moment by
different clients never overwrite each other.
"""
import logging
import uuid
from typing import Any, Dict, Optional

from agents.extraction_ledger import get_player_extraction, is_valid_amount
from models.errors import (
    AlreadyInvestigated, AlreadyVoted, InsufficientResources, InvalidAmount,
    InvalidPhase, NoActiveVote, PlayerInactive, PlayerJailed, PlayerNotFound,
    SelfTargetNotAllowed, TargetNotFound, VoteAlreadyActive,
)
from models.game import Game, GameStatus, Phase, Player, VoteData
from services.document_store import Increment, StoreBacked, game_path, load_game

logger = logging.getLogger(__name__)


# ── Read-only helpers ─────────────────────────────────────────────────────────

def has_investigated_this_round(game: Game, player_id: str) -> bool:
    return bool(game.state.investigations.get(player_id))


def get_investigation_target(game: Game, player_id: str) -> Optional[str]:
    return game.state.investigations.get(player_id)


def has_voted(game: Game, player_id: str) -> bool:
    vote = game.state.current_vote
    return vote is not None and vote.has_voted(player_id)


def open_vote(game: Game) -> Optional[VoteData]:
    vote = game.state.current_vote
    return vote if vote is not None and not vote.resolved else None


def clear_action_phase_updates(game_id: str) -> Dict[str, Any]:
    """Deletes this round's vote and investigations (part of advancing the round)."""
    return {
        game_path(game_id, "gameState", "currentVote"): None,
        game_path(game_id, "gameState", "investigations"): None,
    }


# ── Validation ────────────────────────────────────────────────────────────────

def _require_action_phase(game: Game) -> None:
    if game.status != GameStatus.IN_PROGRESS or game.current_phase != Phase.ACTION:
        raise InvalidPhase("Game is not in action phase")


def _require_actor(game: Game, player_id: str, verb: str) -> Player:
    player = game.players.get(player_id)
    if player is None:
        raise PlayerNotFound(player_id)
    if player.is_jailed:
        raise PlayerJailed(f"Cannot {verb} while jailed")
    if not player.is_active:
        raise PlayerInactive(f"Cannot {verb}: player has been eliminated")
    return player


def _require_target(game: Game, actor_id: str, target_id: str) -> Player:
    if actor_id == target_id:
        raise SelfTargetNotAllowed()
    target = game.players.get(target_id)
    if target is None:
        raise TargetNotFound(target_id)
    return target


class ArrestVoteController(StoreBacked):
    """Action-phase operations. One instance can serve every game."""

    async def investigate(
        self, game_id: str, investigator_id: str, target_id: str
    ) -> Optional[int]:
        """Record the investigation and return the target's extraction this round (or None)."""
        game = await load_game(self.store, game_id)
        _require_action_phase(game)
        _require_actor(game, investigator_id, "investigate")
        if has_investigated_this_round(game, investigator_id):
            raise AlreadyInvestigated()
        _require_target(game, investigator_id, target_id)

        await self.store.patch({
            game_path(game_id, "gameState", "investigations", investigator_id): target_id,
        })
        logger.info(f"[{game_id}] {investigator_id} investigated {target_id}")
        return get_player_extraction(game, target_id)

    async def nominate(self, game_id: str, nominator_id: str, target_id: str) -> VoteData:
        game = await load_game(self.store, game_id)
        _require_action_phase(game)
        _require_actor(game, nominator_id, "nominate")
        if open_vote(game) is not None:
            raise VoteAlreadyActive()
        target = _require_target(game, nominator_id, target_id)
        if target.is_jailed:
            raise PlayerJailed("Target is already jailed")
        if not target.is_active:
            raise PlayerInactive("Target has been eliminated")

        vote = VoteData(
            nominated_by=nominator_id,
            target_player=target_id,
            vote_id=uuid.uuid4().hex[:12],
        )
        await self.store.patch({
            game_path(game_id, "gameState", "currentVote"): vote.to_document(),
        })
        logger.info(f"[{game_id}] {nominator_id} nominated {target_id} for arrest")
        return vote

    async def cast_vote(self, game_id: str, voter_id: str, vote_for: bool) -> Optional[bool]:
        """
        Cast a ballot, then re-read and resolve if quorum is reached.
        Returns None while the vote is still open, else whether the arrest passed
        (also when a concurrent voter resolved it first).
        """
        game = await load_game(self.store, game_id)
        _require_action_phase(game)
        vote = open_vote(game)
        if vote is None:
            raise NoActiveVote()
        _require_actor(game, voter_id, "vote")
        if vote.has_voted(voter_id):
            raise AlreadyVoted()

        side = "votesFor" if vote_for else "votesAgainst"
        await self.store.patch({
            game_path(game_id, "gameState", "currentVote", side, voter_id): vote.ballot_value,
        })
        logger.info(f"[{game_id}] {voter_id} voted {'for' if vote_for else 'against'} arresting {vote.target_player}")
        passed = await self.check_and_resolve_vote(game_id)
        if passed is None:
            latest = (await load_game(self.store, game_id)).state.current_vote
            if latest is not None and latest.resolved and latest.vote_id == vote.vote_id:
                passed = latest.passed
        return passed

    async def check_and_resolve_vote(self, game_id: str) -> Optional[bool]:
        """
        Resolve the open vote once every eligible player has voted.
        Majority for jails the target; a tie does not. No-op on a resolved vote.
        """
        game = await load_game(self.store, game_id)
        vote = open_vote(game)
        if vote is None:
            return None
        if vote.total_votes < len(game.eligible_player_ids()):
            return None

        passed = vote.passed
        updates: Dict[str, Any] = {
            game_path(game_id, "gameState", "currentVote", "resolved"): True,
        }
        target = game.players.get(vote.target_player)
        if passed and target is not None:
            updates[game_path(game_id, "players", vote.target_player, "isJailed")] = True
            updates[game_path(game_id, "players", vote.target_player, "timesArrested")] = (
                target.times_arrested + 1
            )
        await self.store.patch(updates)
        logger.info(
            f"[{game_id}] Arrest vote on {vote.target_player} resolved: "
            f"{len(vote.votes_for)} for / {len(vote.votes_against)} against → "
            f"{'jailed' if passed else 'not arrested'}"
        )
        return passed

    async def replant(self, game_id: str, player_id: str, amount: int) -> None:
        game = await load_game(self.store, game_id)
        _require_action_phase(game)
        player = _require_actor(game, player_id, "replant")
        if not is_valid_amount(amount) or amount <= 0:
            raise InvalidAmount("Replant amount must be a positive integer")
        if amount > player.resources:
            raise InsufficientResources(
                f"Cannot replant {amount}: only {player.resources} held"
            )

        await self.store.patch({
            game_path(game_id, "players", player_id, "resources"): player.resources - amount,
            # other players may replant at the same moment
            game_path(game_id, "gameState", "globalResources"): Increment(amount),
        })
        logger.info(f"[{game_id}] {player_id} replanted {amount}")


# Module-level singleton
arrest_vote_controller = ArrestVoteController()
