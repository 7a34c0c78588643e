"""Simulated waiting-room countdown."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import random

# (lower bound exclusive, minimum step, step spread): steps shrink near the front
_BANDS = (
    (1000, 700, 500),
    (100, 100, 200),
    (0, 10, 40),
)


def initial_queue_position(rng: random.Random, start_range: tuple[int, int] = (3000, 9000)) -> int:
    """Draw a uniform starting position in [low, high)."""
    low, high = start_range
    return rng.randrange(low, high)


def next_queue_position(position: int, rng: random.Random) -> int:
    """Advance the queue by one tick. Never increases and never goes below 0."""
    for floor, minimum, spread in _BANDS:
        if position > floor:
            return max(0, position - rng.randrange(spread) - minimum)
    return 0
