"""Shared fixtures: an in-memory store and a builder for game documents."""
import asyncio
from typing import Any, Dict, Optional

import pytest

from services.document_store import MemoryDocumentStore


def _player(resources: int = 10, **overrides: Any) -> Dict[str, Any]:
    data = {
        "name": "",
        "resources": resources,
        "totalProfit": 0,
        "timesArrested": 0,
        "isJailed": False,
        "status": "active",
    }
    data.update(overrides)
    return data


@pytest.fixture
def game_doc():
    """
    Build a stored game document.

    `roles` maps player id → role name and defines the players; `players`
    overrides individual player fields by id.
    """

    def build(
        roles: Dict[str, str],
        players: Optional[Dict[str, Dict[str, Any]]] = None,
        *,
        host: Optional[str] = None,
        status: str = "in-progress",
        phase: str = "extraction",
        current_round: int = 1,
        global_resources: int = 100,
        seed: str = "s1",
        config: Optional[Dict[str, int]] = None,
        submissions: Optional[Dict[str, int]] = None,
        game_state: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        players = players or {}
        ids = list(roles)
        doc: Dict[str, Any] = {
            "status": status,
            "hostId": host or ids[0],
            "players": {
                pid: _player(name=pid, **players.get(pid, {})) for pid in ids
            },
            "config": {
                "xRounds": 17,
                "yProfit": 408,
                "startingGlobalResources": 714,
                "resourcesPerRound": 10,
                "startingResources": 10,
                **(config or {}),
            },
            "gameState": {
                "currentRound": current_round,
                "currentPhase": phase,
                "globalResources": global_resources,
                "roundSeed": seed,
                **(game_state or {}),
            },
            "privatePlayerInfo": {pid: {"role": role} for pid, role in roles.items()},
        }
        if submissions:
            doc["roundSubmissions"] = {f"round_{current_round}": dict(submissions)}
        return doc

    return build


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def seed_game(store):
    """Write a document under games/<game_id> and return the store."""

    def put(game_id: str, doc: Dict[str, Any]) -> MemoryDocumentStore:
        asyncio.run(store.patch({f"games/{game_id}": doc}))
        return store

    return put
