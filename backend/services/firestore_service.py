import asyncio
import logging
import os
from typing import Any, Dict, List, Tuple

from config import settings
from services.document_store import (
    DocumentStore, Increment, OnChange, Unsubscribe, split_path, strip_none,
)

logger = logging.getLogger(__name__)


class FirestoreDocumentStore(DocumentStore):
    """
    DocumentStore over Cloud Firestore. One Firestore document per game:
    `games/<gameId>/gameState/currentPhase` is field path `gameState.currentPhase`
    on document `games/<gameId>`.

    Async-friendly via run_in_executor so the sync client never blocks the
    event loop. A patch is a single WriteBatch, so it commits atomically.
    """

    def __init__(self):
        if settings.firestore_emulator_host:
            os.environ["FIRESTORE_EMULATOR_HOST"] = settings.firestore_emulator_host
        # Lazy import so the module can be imported before GCP creds exist
        from google.cloud import firestore
        self._firestore = firestore
        self.db = firestore.Client(project=settings.google_cloud_project or None)

    def _run(self, fn):
        """Run a sync Firestore call in the default thread pool."""
        loop = asyncio.get_running_loop()
        return loop.run_in_executor(None, fn)

    # ── Path helpers ──────────────────────────────────────────────────────────

    def _locate(self, path: str) -> Tuple[Any, List[str]]:
        """Split a store path into (document ref, field path parts)."""
        parts = split_path(path)
        if len(parts) < 2:
            raise ValueError(f"Path must address a document: {path!r}")
        ref = self.db.collection(parts[0]).document(parts[1])
        return ref, parts[2:]

    def _field_path(self, parts: List[str]) -> str:
        # Escapes ids that are not plain identifiers (dashes, leading digits)
        return self._firestore.FieldPath(*parts).to_api_repr()

    def _field_value(self, value: Any) -> Any:
        if value is None:
            return self._firestore.DELETE_FIELD
        if isinstance(value, Increment):
            return self._firestore.Increment(value.amount)
        return strip_none(value)

    @staticmethod
    def _extract(data: Any, fields: List[str]) -> Any:
        node = data
        for part in fields:
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    # ── DocumentStore ─────────────────────────────────────────────────────────

    async def read(self, path: str) -> Any:
        ref, fields = self._locate(path)
        doc = await self._run(lambda: ref.get())
        if not doc.exists:
            return None
        return self._extract(doc.to_dict(), fields)

    async def patch(self, updates: Dict[str, Any]) -> None:
        if not updates:
            return
        whole: Dict[str, Tuple[Any, Any]] = {}
        fields: Dict[str, Tuple[Any, Dict[str, Any]]] = {}
        for path, value in updates.items():
            ref, field_parts = self._locate(path)
            if not field_parts:
                if isinstance(value, Increment):
                    raise ValueError(f"Increment needs a field path: {path!r}")
                whole[ref.path] = (ref, value)
                continue
            entry = fields.setdefault(ref.path, (ref, {}))
            entry[1][self._field_path(field_parts)] = self._field_value(value)

        batch = self.db.batch()
        for ref, value in whole.values():
            if value is None:
                batch.delete(ref)
            else:
                batch.set(ref, strip_none(value))
        for ref, field_updates in fields.values():
            batch.update(ref, field_updates)
        await self._run(batch.commit)

    def subscribe(self, path: str, on_change: OnChange) -> Unsubscribe:
        """Must be called from the event loop; callbacks are re-posted onto it."""
        loop = asyncio.get_running_loop()
        ref, field_parts = self._locate(path)

        def _on_snapshot(docs, changes, read_time):
            doc = docs[0] if docs else None
            data = doc.to_dict() if doc is not None and doc.exists else None
            value = self._extract(data, field_parts) if data is not None else None
            loop.call_soon_threadsafe(on_change, value)

        watch = ref.on_snapshot(_on_snapshot)
        return watch.unsubscribe
