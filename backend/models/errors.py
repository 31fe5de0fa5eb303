"""
Game errors.

Every rule violation raised by the engine is a GameError subclass with a stable
`code` so the HTTP layer (and any other caller) can map it without parsing
messages. Nothing here is retried by the engine.
"""
from typing import Optional


class GameError(Exception):
    """Base class for all game rule violations."""

    code = "GAME_ERROR"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.__class__.__doc__ or self.code)

    @property
    def message(self) -> str:
        return str(self)


# ── Lookup ────────────────────────────────────────────────────────────────────

class GameNotFound(GameError):
    """Game does not exist."""

    code = "GAME_NOT_FOUND"

    def __init__(self, game_id: str):
        self.game_id = game_id
        super().__init__(f"Game {game_id} not found")


class PlayerNotFound(GameError):
    """Acting player is not part of the game."""

    code = "PLAYER_NOT_FOUND"

    def __init__(self, player_id: str):
        self.player_id = player_id
        super().__init__(f"Player {player_id} not found")


class TargetNotFound(GameError):
    """Target player is not part of the game."""

    code = "TARGET_NOT_FOUND"

    def __init__(self, target_id: str):
        self.target_id = target_id
        super().__init__(f"Target player {target_id} not found")


# ── Phase / identity ──────────────────────────────────────────────────────────

class InvalidPhase(GameError):
    """Action attempted in the wrong phase."""

    code = "INVALID_PHASE"


class NotHost(GameError):
    """Privileged action attempted by a non-host client."""

    code = "NOT_HOST"


class InvalidCredentials(GameError):
    """Player token missing or does not match the acting player."""

    code = "INVALID_CREDENTIALS"


class InsufficientPlayers(GameError):
    """Too few (or the wrong number of) players to assign roles."""

    code = "INSUFFICIENT_PLAYERS"


class SubmissionsIncomplete(GameError):
    """Round cannot be resolved until every eligible player has submitted."""

    code = "SUBMISSIONS_INCOMPLETE"


# ── Player state ──────────────────────────────────────────────────────────────

class PlayerJailed(GameError):
    """Player is jailed for the rest of this round."""

    code = "PLAYER_JAILED"


class PlayerInactive(GameError):
    """Player has been eliminated."""

    code = "PLAYER_INACTIVE"


class SelfTargetNotAllowed(GameError):
    """Players cannot target themselves."""

    code = "SELF_TARGET_NOT_ALLOWED"


class AlreadyActed(GameError):
    """Player already used this once-per-round action."""

    code = "ALREADY_ACTED"


class AlreadyVoted(AlreadyActed):
    """Player already voted on the current nomination."""

    code = "ALREADY_VOTED"


class AlreadyInvestigated(AlreadyActed):
    """Player already investigated someone this round."""

    code = "ALREADY_INVESTIGATED"


# ── Votes ─────────────────────────────────────────────────────────────────────

class VoteAlreadyActive(GameError):
    """An unresolved arrest vote is already open."""

    code = "VOTE_ALREADY_ACTIVE"


class NoActiveVote(GameError):
    """There is no open arrest vote."""

    code = "NO_ACTIVE_VOTE"


# ── Resources ─────────────────────────────────────────────────────────────────

class InsufficientResources(GameError):
    """Player does not hold enough resources."""

    code = "INSUFFICIENT_RESOURCES"


class InvalidAmount(GameError):
    """Amount is not a valid quantity for this action."""

    code = "INVALID_AMOUNT"
