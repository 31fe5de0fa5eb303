"""
Game HTTP endpoints.

Routes:
  POST /api/games                           Create game + register host as first player
  POST /api/games/{game_id}/join            Player joins the lobby
  GET  /api/games/{game_id}                 Public game state (roles and amounts hidden)
  GET  /api/games/{game_id}/role            A player's own secret role
  POST /api/games/{game_id}/start           Host starts game (role assignment, round 1)
  POST /api/games/{game_id}/extractions     Player submits this round's extraction
  POST /api/games/{game_id}/process         Host resolves the extraction round
  POST /api/games/{game_id}/advance         Host moves to the next round (or finishes)
  POST /api/games/{game_id}/investigate     Peek at another player's extraction
  POST /api/games/{game_id}/nominate        Open an arrest vote
  POST /api/games/{game_id}/vote            Vote on the open arrest
  POST /api/games/{game_id}/replant         Return personal resources to the pool

Every route that acts as a player (the host included) takes that player's id in
the body or query and the token issued at create/join in the X-Player-Token
header. Player ids are public; the token is not.

Game rule violations are raised as GameError and mapped to status codes by the
handler registered in main.py.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query

from agents.arrest_vote import ArrestVoteController
from agents.extraction_ledger import ExtractionLedger
from agents.game_master import GameMaster
from agents.host_round_processor import start_host_processor
from config import settings
from models.game import (
    CreateGameRequest, CreateGameResponse,
    ExtractionRequest, Game, GameConfig, HostActionRequest,
    InvestigateRequest, InvestigateResponse,
    JoinGameRequest, JoinGameResponse,
    NominateRequest, ReplantRequest, RoleResponse,
    StartGameRequest, VoteRequest,
)
from services.document_store import DocumentStore, get_document_store, load_game

logger = logging.getLogger(__name__)

router = APIRouter(tags=["games"])


async def authorize(
    store: DocumentStore, game_id: str, player_id: str, token: Optional[str]
) -> Game:
    """Load the game and check the caller holds `player_id`'s token."""
    game = await load_game(store, game_id)
    GameMaster.authenticate(game, player_id, token)
    return game


@router.post("/games", response_model=CreateGameResponse, status_code=201)
async def create_game(body: CreateGameRequest, store: DocumentStore = Depends(get_document_store)):
    """Create a new game and register the host as the first player."""
    game_id, host_player_id, token = await GameMaster(store).create_game(body.host_name)
    return CreateGameResponse(game_id=game_id, host_player_id=host_player_id, player_token=token)


@router.post("/games/{game_id}/join", response_model=JoinGameResponse, status_code=200)
async def join_game(
    game_id: str, body: JoinGameRequest, store: DocumentStore = Depends(get_document_store)
):
    """Add a player to the lobby. Rejected once the game has started."""
    player_id, token = await GameMaster(store).join_game(game_id, body.player_name)
    return JoinGameResponse(player_id=player_id, game_id=game_id, player_token=token)


@router.get("/games/{game_id}")
async def get_game(game_id: str, store: DocumentStore = Depends(get_document_store)):
    """
    Public game state.
    Roles and tokens are NOT included, and only the ids of players who have
    submitted this round are listed, never the amounts.
    """
    game = await load_game(store, game_id)
    return game.to_public()


@router.get("/games/{game_id}/role", response_model=RoleResponse)
async def get_role(
    game_id: str,
    player_id: str = Query(...),
    x_player_token: Optional[str] = Header(default=None),
    store: DocumentStore = Depends(get_document_store),
):
    game = await authorize(store, game_id, player_id, x_player_token)
    return RoleResponse(player_id=player_id, role=game.role_of(player_id))


@router.post("/games/{game_id}/start", status_code=200)
async def start_game(
    game_id: str,
    body: StartGameRequest,
    x_player_token: Optional[str] = Header(default=None),
    store: DocumentStore = Depends(get_document_store),
):
    """
    Host starts the game. Unset config fields take the canonical 6-player values.
    With HOST_AUTO_PROCESS on, this process then resolves each extraction
    round as soon as every eligible player has submitted.
    """
    await authorize(store, game_id, body.host_id, x_player_token)
    config = GameConfig.canonical(
        x_rounds=body.x_rounds,
        y_profit=body.y_profit,
        starting_global_resources=body.starting_global_resources,
        resources_per_round=body.resources_per_round,
        starting_resources=body.starting_resources,
    )
    config = await GameMaster(store).start_game(game_id, body.host_id, config)
    if settings.host_auto_process:
        start_host_processor(game_id, body.host_id, store=store)
    return {"status": "started", "game_id": game_id, "config": config.to_document()}


@router.post("/games/{game_id}/extractions", status_code=200)
async def submit_extraction(
    game_id: str,
    body: ExtractionRequest,
    x_player_token: Optional[str] = Header(default=None),
    store: DocumentStore = Depends(get_document_store),
):
    await authorize(store, game_id, body.player_id, x_player_token)
    await ExtractionLedger(store).submit(game_id, body.player_id, body.amount)
    return {"status": "submitted"}


@router.post("/games/{game_id}/process", status_code=200)
async def process_round(
    game_id: str,
    body: HostActionRequest,
    x_player_token: Optional[str] = Header(default=None),
    store: DocumentStore = Depends(get_document_store),
):
    """Manual round resolution, for hosts running without auto-processing."""
    await authorize(store, game_id, body.host_id, x_player_token)
    result = await GameMaster(store).process_round(game_id, body.host_id)
    return result.to_document()


@router.post("/games/{game_id}/advance", status_code=200)
async def advance_phase(
    game_id: str,
    body: HostActionRequest,
    x_player_token: Optional[str] = Header(default=None),
    store: DocumentStore = Depends(get_document_store),
):
    await authorize(store, game_id, body.host_id, x_player_token)
    next_round = await GameMaster(store).advance_phase(game_id, body.host_id)
    if next_round is None:
        return {"status": "finished"}
    return {"status": "in-progress", "round": next_round}


@router.post("/games/{game_id}/investigate", response_model=InvestigateResponse)
async def investigate(
    game_id: str,
    body: InvestigateRequest,
    x_player_token: Optional[str] = Header(default=None),
    store: DocumentStore = Depends(get_document_store),
):
    await authorize(store, game_id, body.investigator_id, x_player_token)
    extraction = await ArrestVoteController(store).investigate(
        game_id, body.investigator_id, body.target_id
    )
    return InvestigateResponse(target_id=body.target_id, extraction=extraction)


@router.post("/games/{game_id}/nominate", status_code=200)
async def nominate(
    game_id: str,
    body: NominateRequest,
    x_player_token: Optional[str] = Header(default=None),
    store: DocumentStore = Depends(get_document_store),
):
    await authorize(store, game_id, body.nominator_id, x_player_token)
    vote = await ArrestVoteController(store).nominate(game_id, body.nominator_id, body.target_id)
    return vote.to_document()


@router.post("/games/{game_id}/vote", status_code=200)
async def cast_vote(
    game_id: str,
    body: VoteRequest,
    x_player_token: Optional[str] = Header(default=None),
    store: DocumentStore = Depends(get_document_store),
):
    """`arrested` is null while the vote is still open."""
    await authorize(store, game_id, body.voter_id, x_player_token)
    passed = await ArrestVoteController(store).cast_vote(game_id, body.voter_id, body.vote_for)
    return {"resolved": passed is not None, "arrested": passed}


@router.post("/games/{game_id}/replant", status_code=200)
async def replant(
    game_id: str,
    body: ReplantRequest,
    x_player_token: Optional[str] = Header(default=None),
    store: DocumentStore = Depends(get_document_store),
):
    await authorize(store, game_id, body.player_id, x_player_token)
    await ArrestVoteController(store).replant(game_id, body.player_id, body.amount)
    return {"status": "replanted"}
