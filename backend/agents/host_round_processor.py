"""
Host Round Processor: auto-advance from extraction to action.

Runs on the host only. Watches the game document; whenever an update shows a
complete extraction round it waits `round_process_delay` seconds (so writes
landing at the same moment are all visible), then calls process_round.

Guards, in order:
  - in-flight flag: at most one scheduled or running attempt
  - last-processed marker: a round is never processed twice from here
  - process_round's own phase check: a stale attempt fails harmlessly

A failed attempt is logged and the processor re-arms on the next update.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

from agents.extraction_ledger import all_players_submitted
from agents.game_master import GameMaster
from config import settings
from models.errors import GameError
from models.game import Game, GameStatus, Phase
from services.document_store import DocumentStore, Unsubscribe, game_path, get_document_store

logger = logging.getLogger(__name__)


class HostRoundProcessor:

    def __init__(
        self,
        game_id: str,
        host_id: str,
        store: Optional[DocumentStore] = None,
        master: Optional[GameMaster] = None,
        delay: Optional[float] = None,
    ):
        self.game_id = game_id
        self.host_id = host_id
        self.store = store or get_document_store()
        self.master = master or GameMaster(self.store)
        self.delay = settings.round_process_delay if delay is None else delay

        self._unsubscribe: Optional[Unsubscribe] = None
        self._task: Optional[asyncio.Task] = None
        self._processing = False
        self.last_processed_round: Optional[int] = None

    @property
    def running(self) -> bool:
        return self._unsubscribe is not None

    def start(self) -> None:
        """Must be called from the event loop."""
        if self.running:
            return
        self._unsubscribe = self.store.subscribe(game_path(self.game_id), self._on_change)
        logger.info(f"[{self.game_id}] Host round processor started")

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        logger.info(f"[{self.game_id}] Host round processor stopped")

    def _ready(self, game: Game) -> bool:
        if game.actual_host_id != self.host_id:
            return False
        if game.status != GameStatus.IN_PROGRESS or game.current_phase != Phase.EXTRACTION:
            return False
        if self.last_processed_round == game.current_round:
            return False
        return all_players_submitted(game)

    def _on_change(self, data: Optional[Dict[str, Any]]) -> None:
        if not data:
            return
        game = Game.from_document(self.game_id, data)
        if game.status == GameStatus.FINISHED:
            # Unsubscribe only: the finishing write may come from our own task
            if self._unsubscribe is not None:
                self._unsubscribe()
                self._unsubscribe = None
            if _processors.get(self.game_id) is self:
                del _processors[self.game_id]
            logger.info(f"[{self.game_id}] Game finished: host round processor detached")
            return
        if self._processing or not self._ready(game):
            return

        self._processing = True
        self._task = asyncio.get_running_loop().create_task(
            self._process_after_delay(game.current_round)
        )

    async def _process_after_delay(self, round_number: int) -> None:
        try:
            await asyncio.sleep(self.delay)
            logger.info(f"[{self.game_id}] Host processing round {round_number}...")
            await self.master.process_round(self.game_id, self.host_id)
            self.last_processed_round = round_number
        except asyncio.CancelledError:
            raise
        except GameError as e:
            logger.error(f"[{self.game_id}] Could not process round {round_number}: {e}")
        except Exception:
            logger.error(f"[{self.game_id}] Error processing round {round_number}", exc_info=True)
        finally:
            self._processing = False


# ── Registry ──────────────────────────────────────────────────────────────────
# One processor per game hosted by this process.

_processors: Dict[str, HostRoundProcessor] = {}


def start_host_processor(
    game_id: str, host_id: str, store: Optional[DocumentStore] = None
) -> HostRoundProcessor:
    processor = _processors.get(game_id)
    if processor is None:
        processor = HostRoundProcessor(game_id, host_id, store=store)
        _processors[game_id] = processor
    processor.start()
    return processor


def stop_host_processor(game_id: str) -> None:
    processor = _processors.pop(game_id, None)
    if processor is not None:
        processor.stop()


def stop_all_host_processors() -> None:
    for game_id in list(_processors):
        stop_host_processor(game_id)
