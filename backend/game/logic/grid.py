"""
Seat layout generation.

Layouts are randomized per round on purpose; only the shape and the number of
real seats are stable. Callers pass a ``random.Random`` so tests can seed it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from game.logic.enums import GridShape
from game.logic.types import Grid, Seat

if TYPE_CHECKING:
    import random

    from game.logic.settings import GameSettings

STAIRCASE_BASE_SEATS = 3
STAIRCASE_JITTER = 2  # inclusive upper bound of the per-row random extra
_SEAT_TAG_BITS = 32


def _seat_id(row: int, col: int, rng: random.Random) -> str:
    return f"{row}-{col}-{rng.getrandbits(_SEAT_TAG_BITS):08x}"


def make_staircase(rows: int, cols: int, rng: random.Random) -> Grid:
    """
    Build a stadium-like chart: row r holds min(cols, r + 3..5) seats from the
    left edge, the rest of the row is empty placeholders.
    """
    grid_rows = []
    for r in range(rows):
        limit = min(cols, r + rng.randint(0, STAIRCASE_JITTER) + STAIRCASE_BASE_SEATS)
        row = tuple(Seat(id=_seat_id(r, c, rng)) if c < limit else None for c in range(cols))
        grid_rows.append(row)
    return Grid(rows=tuple(grid_rows))


def make_rectangle(rows: int, cols: int, rng: random.Random) -> Grid:
    """Build a fully seated rows x cols grid."""
    return Grid(rows=tuple(tuple(Seat(id=_seat_id(r, c, rng)) for c in range(cols)) for r in range(rows)))


def generate_grid(round_index: int, settings: GameSettings, rng: random.Random) -> Grid:
    """Generate the seat grid for a 1-based round index using the configured shape."""
    rows, cols = settings.grid_size(round_index)
    if settings.grid_shape == GridShape.RECTANGLE:
        return make_rectangle(rows, cols, rng)
    return make_staircase(rows, cols, rng)
