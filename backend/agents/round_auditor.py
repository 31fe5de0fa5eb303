"""
Round Auditor: client-side check of the host's round writes.

Any client (host included) can run one. It keeps the latest extraction-phase
snapshot of each round; when the first snapshot past extraction arrives it
recomputes the round from the cached snapshot and compares it with what was
written. Mismatches are reported, never corrected.
"""
import logging
from typing import Any, Callable, Dict, List, Optional

from agents.round_resolver import verify_written_round
from models.game import Game, GameStatus, Phase, VerificationReport
from services.document_store import DocumentStore, Unsubscribe, game_path, get_document_store

logger = logging.getLogger(__name__)


class RoundAuditor:

    def __init__(
        self,
        game_id: str,
        store: Optional[DocumentStore] = None,
        on_mismatch: Optional[Callable[[VerificationReport], None]] = None,
    ):
        self.game_id = game_id
        self.store = store or get_document_store()
        self.on_mismatch = on_mismatch
        self.reports: List[VerificationReport] = []
        self._extraction_snapshots: Dict[int, Game] = {}
        self._unsubscribe: Optional[Unsubscribe] = None

    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(game_path(self.game_id), self._on_change)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_change(self, data: Optional[Dict[str, Any]]) -> None:
        if not data:
            return
        game = Game.from_document(self.game_id, data)
        if game.status == GameStatus.WAITING or game.current_phase is None:
            return

        if game.status == GameStatus.IN_PROGRESS and game.current_phase == Phase.EXTRACTION:
            self._extraction_snapshots[game.current_round] = game
            return

        before = self._extraction_snapshots.pop(game.current_round, None)
        if before is None:
            return
        self.audit(before, game)

    def audit(self, before: Game, after: Game) -> VerificationReport:
        report = verify_written_round(before, after)
        self.reports.append(report)
        if report.ok:
            logger.info(f"[{self.game_id}] Round {report.round} verified")
        else:
            logger.warning(
                f"[{self.game_id}] Round {report.round} does not match host writes: {report.mismatches}"
            )
            if self.on_mismatch is not None:
                self.on_mismatch(report)
        return report
