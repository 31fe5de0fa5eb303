"""
Shared game document store.

The engine never holds game state itself: it reads a snapshot, decides, and
writes a patch. Paths are "/"-separated keys under `games/<gameId>`, matching
the layout every client subscribes to.

Contract (any backend):
  read(path)                 → snapshot value at path (None if absent)
  subscribe(path, on_change) → unsubscribe callable; on_change(value) fires once
                               with the current value, then after every change
  patch({path: value})       → all writes commit together or not at all;
                               a None value deletes the field, an Increment
                               adds to the stored number server-side
"""
import abc
import copy
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from config import settings
from models.errors import GameNotFound
from models.game import Game

logger = logging.getLogger(__name__)

OnChange = Callable[[Any], None]
Unsubscribe = Callable[[], None]


def split_path(path: str) -> List[str]:
    return [part for part in path.strip("/").split("/") if part]


def game_path(game_id: str, *parts: str) -> str:
    return "/".join([settings.games_collection, game_id, *parts])


def _overlaps(a: List[str], b: List[str]) -> bool:
    n = min(len(a), len(b))
    return a[:n] == b[:n]


class Increment:
    """Patch value applied by the store: adds `amount` to the stored number (absent counts as 0)."""

    def __init__(self, amount: int):
        self.amount = amount

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, Increment) and other.amount == self.amount

    def __repr__(self) -> str:
        return f"Increment({self.amount})"


def strip_none(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: strip_none(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [strip_none(v) for v in value]
    return value


class DocumentStore(abc.ABC):

    @abc.abstractmethod
    async def read(self, path: str) -> Any:
        ...

    @abc.abstractmethod
    def subscribe(self, path: str, on_change: OnChange) -> Unsubscribe:
        ...

    @abc.abstractmethod
    async def patch(self, updates: Dict[str, Any]) -> None:
        ...


class MemoryDocumentStore(DocumentStore):
    """
    In-process store with the same semantics as the realtime backend:
    deep-copied snapshots, atomic multi-path patches, nulls delete and empty
    maps disappear. Listeners are notified synchronously after each patch.
    """

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._root: Dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self._listeners: List[Tuple[List[str], OnChange]] = []

    def _get(self, parts: List[str]) -> Any:
        node: Any = self._root
        for part in parts:
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    async def read(self, path: str) -> Any:
        return copy.deepcopy(self._get(split_path(path)))

    def subscribe(self, path: str, on_change: OnChange) -> Unsubscribe:
        entry = (split_path(path), on_change)
        self._listeners.append(entry)
        on_change(copy.deepcopy(self._get(entry[0])))

        def unsubscribe() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return unsubscribe

    async def patch(self, updates: Dict[str, Any]) -> None:
        if not updates:
            return
        targets = [(split_path(p), v) for p, v in updates.items()]
        for i, (a, _) in enumerate(targets):
            if not a:
                raise ValueError("Cannot patch the store root")
            for b, _ in targets[i + 1:]:
                if _overlaps(a, b):
                    raise ValueError(
                        f"Patch paths overlap: {'/'.join(a)} and {'/'.join(b)}"
                    )

        # Apply to a copy, then swap: either every path lands or none does.
        root = copy.deepcopy(self._root)
        for parts, value in targets:
            self._write(root, parts, value)
        self._root = root

        touched = [parts for parts, _ in targets]
        for listen_parts, on_change in list(self._listeners):
            if any(_overlaps(listen_parts, parts) for parts in touched):
                try:
                    on_change(copy.deepcopy(self._get(listen_parts)))
                except Exception:
                    logger.exception("Listener on %s failed", "/".join(listen_parts))

    @staticmethod
    def _write(root: Dict[str, Any], parts: List[str], value: Any) -> None:
        if value is None:
            trail = [root]
            node: Any = root
            for part in parts[:-1]:
                if not isinstance(node, dict) or part not in node:
                    return
                node = node[part]
                trail.append(node)
            if isinstance(node, dict):
                node.pop(parts[-1], None)
            # prune maps left empty by the delete
            for depth in range(len(parts) - 1, 0, -1):
                if trail[depth] == {}:
                    trail[depth - 1].pop(parts[depth - 1], None)
                else:
                    break
            return

        node = root
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        if isinstance(value, Increment):
            current = node.get(parts[-1])
            if not isinstance(current, (int, float)) or isinstance(current, bool):
                current = 0
            node[parts[-1]] = current + value.amount
            return
        node[parts[-1]] = strip_none(copy.deepcopy(value))


class StoreBacked:
    """Base for engine components that read and patch the shared document."""

    def __init__(self, store: Optional[DocumentStore] = None):
        self._store = store

    @property
    def store(self) -> DocumentStore:
        return self._store or get_document_store()


async def load_game(store: DocumentStore, game_id: str) -> Game:
    """Fresh snapshot of the whole game document."""
    data = await store.read(game_path(game_id))
    if not data:
        raise GameNotFound(game_id)
    return Game.from_document(game_id, data)


_document_store: Optional[DocumentStore] = None


def get_document_store() -> DocumentStore:
    """Lazy singleton, initialised on first call, not at import time.
    Use as a FastAPI dependency: Depends(get_document_store)
    """
    global _document_store
    if _document_store is None:
        if settings.store_backend == "firestore":
            from services.firestore_service import FirestoreDocumentStore
            _document_store = FirestoreDocumentStore()
        else:
            _document_store = MemoryDocumentStore()
        logger.info("Document store backend: %s", settings.store_backend)
    return _document_store
