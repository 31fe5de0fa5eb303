"""
Seeded randomness shared by every client.

Each round's draws come from a SeededRandom built from gameState.roundSeed, so
any client replaying the round consumes the exact same float sequence as the
host. Integer draws and picks are derived from that float stream only, never
from other random.Random helpers, so the contract is just "same seed, same
floats, same order".
"""
import random
import time
from typing import Callable, Optional, Sequence, TypeVar

T = TypeVar("T")


class SeededRandom:
    def __init__(self, seed: str):
        self.seed = seed
        self._rng = random.Random(seed)

    def random(self) -> float:
        """Next float in [0, 1)."""
        return self._rng.random()

    def randint(self, low: int, high: int) -> int:
        """Uniform integer in [low, high], inclusive on both ends."""
        if high < low:
            raise ValueError(f"empty range [{low}, {high}]")
        return low + int(self.random() * (high - low + 1))

    def pick(self, items: Sequence[T]) -> Optional[T]:
        if not items:
            return None
        return items[int(self.random() * len(items))]


def make_round_seed(
    game_id: str, round_number: int, clock: Callable[[], float] = time.time
) -> str:
    """Unique per round: game id, round number and the host's wall clock in ms."""
    return f"{game_id}_round_{round_number}_{int(clock() * 1000)}"


def fallback_round_seed(game_id: str, round_number: int) -> str:
    """Seed used when a round was stored without one."""
    return f"{game_id}_round_{round_number}"
