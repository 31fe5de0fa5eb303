"""Unit tests for extraction submissions and completeness."""

import asyncio

import pytest

from agents.extraction_ledger import (
    ExtractionLedger,
    all_players_submitted,
    get_player_extraction,
    pending_players,
)
from models.errors import (
    GameNotFound, InvalidAmount, InvalidPhase, PlayerInactive, PlayerJailed, PlayerNotFound,
)
from models.game import Game


ROLES = {"A": "Exploiter", "B": "Environmentalist", "C": "Moderate"}


def _read_submissions(store):
    return asyncio.run(store.read("games/G/roundSubmissions/round_1")) or {}


def test_submit_and_resubmit(seed_game, game_doc):
    store = seed_game("G", game_doc(ROLES))
    ledger = ExtractionLedger(store)
    asyncio.run(ledger.submit("G", "A", 12))
    asyncio.run(ledger.submit("G", "B", 0))
    asyncio.run(ledger.submit("G", "A", 7))
    assert _read_submissions(store) == {"A": 7, "B": 0}


def test_submit_above_pool_is_accepted(seed_game, game_doc):
    store = seed_game("G", game_doc(ROLES, global_resources=5))
    asyncio.run(ExtractionLedger(store).submit("G", "A", 50))
    assert _read_submissions(store) == {"A": 50}


def test_submit_outside_extraction_phase(seed_game, game_doc):
    store = seed_game("G", game_doc(ROLES, phase="action"))
    with pytest.raises(InvalidPhase):
        asyncio.run(ExtractionLedger(store).submit("G", "A", 1))


def test_submit_before_start(seed_game, game_doc):
    store = seed_game("G", game_doc(ROLES, status="waiting"))
    with pytest.raises(InvalidPhase):
        asyncio.run(ExtractionLedger(store).submit("G", "A", 1))


def test_jailed_player_cannot_submit(seed_game, game_doc):
    store = seed_game("G", game_doc(ROLES, {"B": {"isJailed": True}}))
    with pytest.raises(PlayerJailed):
        asyncio.run(ExtractionLedger(store).submit("G", "B", 1))
    assert _read_submissions(store) == {}


def test_inactive_player_cannot_submit(seed_game, game_doc):
    store = seed_game("G", game_doc(ROLES, {"C": {"status": "inactive"}}))
    with pytest.raises(PlayerInactive):
        asyncio.run(ExtractionLedger(store).submit("G", "C", 1))


@pytest.mark.parametrize("amount", [-1, 1.5, True, "3"])
def test_invalid_amounts(seed_game, game_doc, amount):
    store = seed_game("G", game_doc(ROLES))
    with pytest.raises(InvalidAmount):
        asyncio.run(ExtractionLedger(store).submit("G", "A", amount))


def test_unknown_player_and_game(seed_game, game_doc):
    store = seed_game("G", game_doc(ROLES))
    with pytest.raises(PlayerNotFound):
        asyncio.run(ExtractionLedger(store).submit("G", "Z", 1))
    with pytest.raises(GameNotFound):
        asyncio.run(ExtractionLedger(store).submit("NOPE", "A", 1))


def test_all_submitted_ignores_jailed_and_eliminated(game_doc):
    doc = game_doc(
        ROLES,
        {"B": {"isJailed": True}, "C": {"status": "inactive"}},
        submissions={"A": 3},
    )
    game = Game.from_document("G", doc)
    assert all_players_submitted(game)
    assert pending_players(game) == []


def test_all_submitted_waits_for_everyone(game_doc):
    game = Game.from_document("G", game_doc(ROLES, submissions={"A": 3, "C": 1}))
    assert not all_players_submitted(game)
    assert pending_players(game) == ["B"]


def test_all_submitted_false_with_no_eligible_players(game_doc):
    players = {pid: {"status": "inactive"} for pid in ROLES}
    game = Game.from_document("G", game_doc(ROLES, players))
    assert not all_players_submitted(game)


def test_get_player_extraction(game_doc):
    doc = game_doc(ROLES, current_round=2, submissions={"A": 9})
    game = Game.from_document("G", doc)
    assert get_player_extraction(game, "A") == 9
    assert get_player_extraction(game, "B") is None
    assert get_player_extraction(game, "A", round_number=1) is None
