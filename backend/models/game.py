from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List, Dict, Any
from enum import Enum
from datetime import datetime, timezone

from models.constants import (
    DEFAULT_RESOURCES_PER_ROUND,
    DEFAULT_STARTING_GLOBAL_RESOURCES,
    DEFAULT_STARTING_RESOURCES,
    DEFAULT_X_ROUNDS,
    DEFAULT_Y_PROFIT,
    FALLBACK_VALUES,
)


def _utcnow() -> datetime:
    """Timezone-aware UTC datetime (replaces deprecated datetime.utcnow)."""
    return datetime.now(timezone.utc)


def round_key(round_number: int) -> str:
    return f"round_{round_number}"


class Role(str, Enum):
    EXPLOITER = "Exploiter"
    ENVIRONMENTALIST = "Environmentalist"
    MODERATE = "Moderate"


class Faction(str, Enum):
    """Winner values written to gameState.winner."""
    EXPLOITERS = "Exploiters"
    ENVIRONMENTALISTS = "Environmentalists"
    MODERATES = "Moderates"


class GameStatus(str, Enum):
    WAITING = "waiting"           # lobby, players joining
    IN_PROGRESS = "in-progress"
    FINISHED = "finished"


class Phase(str, Enum):
    EXTRACTION = "extraction"
    ACTION = "action"


class PlayerStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


# ── Shared document models ────────────────────────────────────────────────────
# Stored field names are camelCase (the shape every client reads); Python
# attributes stay snake_case.

class DocumentModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> Dict[str, Any]:
        """Serialise to the stored shape. None fields are omitted (absent == null)."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class Player(DocumentModel):
    name: str = ""
    is_host: Optional[bool] = None
    resources: int = 0
    total_profit: int = 0
    times_arrested: int = 0
    is_jailed: bool = False
    status: PlayerStatus = PlayerStatus.ACTIVE
    joined_at: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == PlayerStatus.ACTIVE

    @property
    def is_eligible(self) -> bool:
        """Active and not jailed: may submit, vote, investigate, nominate, replant."""
        return self.is_active and not self.is_jailed


class GameConfig(DocumentModel):
    """Immutable once the game starts. Defaults are the fallbacks for older documents."""
    x_rounds: int = FALLBACK_VALUES["X_ROUNDS"]
    y_profit: int = FALLBACK_VALUES["Y_PROFIT"]
    starting_global_resources: int = FALLBACK_VALUES["STARTING_GLOBAL_RESOURCES"]
    resources_per_round: int = FALLBACK_VALUES["RESOURCES_PER_ROUND"]
    starting_resources: int = FALLBACK_VALUES["STARTING_RESOURCES"]

    @classmethod
    def canonical(cls, **overrides: Any) -> "GameConfig":
        values = {
            "x_rounds": DEFAULT_X_ROUNDS,
            "y_profit": DEFAULT_Y_PROFIT,
            "starting_global_resources": DEFAULT_STARTING_GLOBAL_RESOURCES,
            "resources_per_round": DEFAULT_RESOURCES_PER_ROUND,
            "starting_resources": DEFAULT_STARTING_RESOURCES,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


class VoteData(DocumentModel):
    nominated_by: str
    target_player: str
    vote_id: Optional[str] = None
    votes_for: List[str] = Field(default_factory=list)
    votes_against: List[str] = Field(default_factory=list)
    resolved: bool = False

    # Stored as {voterId: voteId} so concurrent votes land on disjoint paths.
    # A ballot only counts when its value names this nomination; documents
    # without a voteId store plain `true`.
    @model_validator(mode="before")
    @classmethod
    def _collect_voters(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        vote_id = data.get("voteId", data.get("vote_id"))
        for alias, name in (("votesFor", "votes_for"), ("votesAgainst", "votes_against")):
            key = alias if alias in data else name
            value = data.get(key)
            if value is None:
                data[key] = []
            elif isinstance(value, dict):
                data[key] = sorted(
                    voter for voter, cast in value.items()
                    if (cast == vote_id if vote_id else cast is True)
                )
        return data

    @field_serializer("votes_for", "votes_against")
    def _voters_as_map(self, voters: List[str]) -> Dict[str, Any]:
        return {voter: self.ballot_value for voter in voters}

    @property
    def ballot_value(self) -> Any:
        """What a ballot for this nomination stores under its voter id."""
        return self.vote_id or True

    @property
    def total_votes(self) -> int:
        return len(self.votes_for) + len(self.votes_against)

    @property
    def passed(self) -> bool:
        """Strict majority for; a tie does not arrest."""
        return len(self.votes_for) > len(self.votes_against)

    def has_voted(self, player_id: str) -> bool:
        return player_id in self.votes_for or player_id in self.votes_against


class GameState(DocumentModel):
    current_round: int = 1
    current_phase: Optional[Phase] = None
    global_resources: int = 0
    revealed_extraction: Optional[int] = None
    round_seed: Optional[str] = None
    round_fees: Dict[str, int] = Field(default_factory=dict)
    current_vote: Optional[VoteData] = None
    investigations: Dict[str, str] = Field(default_factory=dict)
    winner: Optional[str] = None

    @field_validator("round_fees", "investigations", mode="before")
    @classmethod
    def _null_map(cls, value: Any) -> Any:
        return {} if value is None else value


class PrivatePlayerInfo(DocumentModel):
    role: Role


class Game(DocumentModel):
    id: str = ""
    status: GameStatus = GameStatus.WAITING
    host_id: Optional[str] = None
    creator_id: Optional[str] = None  # legacy host field
    players: Dict[str, Player] = Field(default_factory=dict)
    config: Optional[GameConfig] = None
    game_state: Optional[GameState] = None
    round_submissions: Dict[str, Dict[str, int]] = Field(default_factory=dict)
    private_player_info: Dict[str, PrivatePlayerInfo] = Field(default_factory=dict)
    # playerId → secret token handed out at create/join; never published
    player_tokens: Dict[str, str] = Field(default_factory=dict)
    created_at: Optional[str] = None

    @field_validator(
        "players", "round_submissions", "private_player_info", "player_tokens", mode="before"
    )
    @classmethod
    def _null_map(cls, value: Any) -> Any:
        return {} if value is None else value

    @classmethod
    def from_document(cls, game_id: str, data: Dict[str, Any]) -> "Game":
        return cls.model_validate({**data, "id": game_id})

    # ── Accessors ─────────────────────────────────────────────────────────────

    @property
    def actual_host_id(self) -> Optional[str]:
        return self.host_id or self.creator_id

    @property
    def state(self) -> GameState:
        return self.game_state or GameState()

    @property
    def effective_config(self) -> GameConfig:
        return self.config or GameConfig()

    @property
    def current_round(self) -> int:
        return self.state.current_round

    @property
    def current_phase(self) -> Optional[Phase]:
        return self.state.current_phase

    @property
    def round_key(self) -> str:
        return round_key(self.current_round)

    def submissions(self, round_number: Optional[int] = None) -> Dict[str, int]:
        key = round_key(round_number if round_number is not None else self.current_round)
        return dict(self.round_submissions.get(key) or {})

    def role_of(self, player_id: str) -> Optional[Role]:
        info = self.private_player_info.get(player_id)
        return info.role if info else None

    def eligible_player_ids(self) -> List[str]:
        return sorted(pid for pid, p in self.players.items() if p.is_eligible)

    def player_ids_with_role(self, role: Role, active_only: bool = False) -> List[str]:
        return sorted(
            pid for pid, p in self.players.items()
            if self.role_of(pid) == role and (p.is_active or not active_only)
        )

    def to_public(self) -> Dict[str, Any]:
        """Safe representation: omits roles, player tokens and submission amounts."""
        state = self.state
        return {
            "id": self.id,
            "status": self.status.value,
            "hostId": self.actual_host_id,
            "config": self.config.to_document() if self.config else None,
            "players": {pid: p.to_document() for pid, p in self.players.items()},
            "gameState": state.to_document() if self.game_state else None,
            "submitted": sorted(self.submissions()),
        }


# ── Engine results ────────────────────────────────────────────────────────────

class RoundResult(DocumentModel):
    total_extraction: int
    new_global_resources: int
    player_rewards: Dict[str, int] = Field(default_factory=dict)   # net of fees
    round_fees: Dict[str, int] = Field(default_factory=dict)
    revealed_extraction: Optional[int] = None


class WinOutcome(BaseModel):
    winner: Faction
    reason: str
    rule: int  # position in the evaluation order, 1-based


class VerificationReport(BaseModel):
    game_id: str
    round: int
    # path/field → {"expected": ..., "actual": ...}
    mismatches: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.mismatches


# ── HTTP request/response models ──────────────────────────────────────────────

class CreateGameRequest(BaseModel):
    host_name: str = "Host"


class CreateGameResponse(BaseModel):
    game_id: str
    host_player_id: str
    player_token: str


class JoinGameRequest(BaseModel):
    player_name: str


class JoinGameResponse(BaseModel):
    player_id: str
    game_id: str
    player_token: str


class StartGameRequest(BaseModel):
    host_id: str
    x_rounds: Optional[int] = Field(default=None, ge=1)
    y_profit: Optional[int] = Field(default=None, ge=1)
    starting_global_resources: Optional[int] = Field(default=None, ge=0)
    resources_per_round: Optional[int] = Field(default=None, ge=0)
    starting_resources: Optional[int] = Field(default=None, ge=0)


class HostActionRequest(BaseModel):
    host_id: str


class ExtractionRequest(BaseModel):
    player_id: str
    amount: int


class InvestigateRequest(BaseModel):
    investigator_id: str
    target_id: str


class InvestigateResponse(BaseModel):
    target_id: str
    extraction: Optional[int] = None


class NominateRequest(BaseModel):
    nominator_id: str
    target_id: str


class VoteRequest(BaseModel):
    voter_id: str
    vote_for: bool


class ReplantRequest(BaseModel):
    player_id: str
    amount: int


class RoleResponse(BaseModel):
    player_id: str
    role: Optional[Role] = None
