"""Unit tests for the in-memory document store and model round-tripping."""

import asyncio

import pytest

from models.game import Game, VoteData
from services.document_store import Increment, MemoryDocumentStore, game_path, load_game
from models.errors import GameNotFound


def test_patch_writes_and_reads_nested_paths():
    store = MemoryDocumentStore()

    async def run():
        await store.patch({
            "games/G/gameState/currentRound": 1,
            "games/G/players/A/resources": 10,
        })
        return await store.read("games/G")

    data = asyncio.run(run())
    assert data == {"gameState": {"currentRound": 1}, "players": {"A": {"resources": 10}}}


def test_none_deletes_and_prunes_empty_maps():
    store = MemoryDocumentStore({"games": {"G": {"gameState": {"roundFees": {"A": 3}}, "status": "x"}}})

    async def run():
        await store.patch({"games/G/gameState/roundFees/A": None})
        return await store.read("games/G")

    assert asyncio.run(run()) == {"status": "x"}


def test_overlapping_paths_rejected_without_partial_write():
    store = MemoryDocumentStore({"games": {"G": {"status": "waiting"}}})

    async def run():
        with pytest.raises(ValueError):
            await store.patch({
                "games/G/status": "in-progress",
                "games/G/gameState": {"currentRound": 1},
                "games/G/gameState/currentRound": 2,
            })
        return await store.read("games/G")

    assert asyncio.run(run()) == {"status": "waiting"}


def test_increment_adds_to_stored_number():
    store = MemoryDocumentStore({"games": {"G": {"gameState": {"globalResources": 50}}}})

    async def run():
        await store.patch({
            "games/G/gameState/globalResources": Increment(7),
            "games/G/players/A/resources": Increment(-3),
        })
        await store.patch({"games/G/gameState/globalResources": Increment(5)})
        return await store.read("games/G")

    data = asyncio.run(run())
    assert data["gameState"]["globalResources"] == 62
    # absent field counts as zero
    assert data["players"]["A"]["resources"] == -3


def test_snapshots_are_copies():
    store = MemoryDocumentStore({"games": {"G": {"players": {"A": {"resources": 1}}}}})

    async def run():
        snap = await store.read("games/G")
        snap["players"]["A"]["resources"] = 99
        return await store.read("games/G/players/A/resources")

    assert asyncio.run(run()) == 1


def test_subscribe_fires_immediately_then_on_overlapping_changes():
    store = MemoryDocumentStore({"games": {"G": {"status": "waiting"}}})
    seen = []
    unsubscribe = store.subscribe("games/G", seen.append)
    assert seen == [{"status": "waiting"}]

    asyncio.run(store.patch({"games/G/status": "in-progress"}))
    asyncio.run(store.patch({"games/OTHER/status": "waiting"}))
    assert seen == [{"status": "waiting"}, {"status": "in-progress"}]

    unsubscribe()
    asyncio.run(store.patch({"games/G/status": "finished"}))
    assert len(seen) == 2


def test_failing_listener_does_not_block_others():
    store = MemoryDocumentStore()
    seen = []

    def boom(value):
        if value is not None:
            raise RuntimeError("listener failure")

    store.subscribe("games/G", boom)
    store.subscribe("games/G", seen.append)
    asyncio.run(store.patch({"games/G/status": "waiting"}))
    assert seen[-1] == {"status": "waiting"}


def test_load_game_missing_raises():
    with pytest.raises(GameNotFound):
        asyncio.run(load_game(MemoryDocumentStore(), "NOPE"))


def test_game_path():
    assert game_path("G", "players", "A") == "games/G/players/A"


def test_vote_sets_accept_map_or_list():
    from_map = VoteData.model_validate({
        "nominatedBy": "A", "targetPlayer": "B",
        "votesFor": {"C": True, "A": True}, "votesAgainst": None,
    })
    assert from_map.votes_for == ["A", "C"]
    assert from_map.votes_against == []

    from_list = VoteData.model_validate({
        "nominatedBy": "A", "targetPlayer": "B", "votesFor": ["A"], "votesAgainst": ["C"],
    })
    assert from_list.total_votes == 2
    assert from_list.to_document()["votesFor"] == {"A": True}


def test_game_document_defaults(game_doc):
    game = Game.from_document("G", {"players": {"A": {"name": "a"}}, "creatorId": "A"})
    assert game.actual_host_id == "A"
    assert game.current_round == 1
    assert game.effective_config.x_rounds == 20
    assert game.submissions() == {}

    public = Game.from_document("G", game_doc({"A": "Exploiter", "B": "Moderate"}, submissions={"A": 5})).to_public()
    assert "privatePlayerInfo" not in public
    assert public["submitted"] == ["A"]


def test_ballots_count_only_for_their_own_nomination():
    vote = VoteData.model_validate({
        "nominatedBy": "A", "targetPlayer": "B", "voteId": "v2",
        "votesFor": {"C": "v2", "D": "v1", "E": True},
        "votesAgainst": {"F": "v2"},
    })
    assert vote.votes_for == ["C"]
    assert vote.votes_against == ["F"]
    assert not vote.has_voted("D")
    assert vote.to_document()["votesFor"] == {"C": "v2"}
    assert vote.ballot_value == "v2"
