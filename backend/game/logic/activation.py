"""Pick the scarce seats that become tappable in a round."""

from __future__ import annotations

from typing import TYPE_CHECKING

from game.logic.exceptions import NotEnoughSeatsError
from game.logic.settings import SEATS_PER_ROUND

if TYPE_CHECKING:
    import random

    from game.logic.types import Grid


def open_random_seats(grid: Grid, rng: random.Random, count: int = SEATS_PER_ROUND) -> tuple[Grid, frozenset[str]]:
    """
    Choose ``count`` distinct real seats uniformly without replacement and mark
    them active. Every other seat is returned inactive.
    """
    seat_ids = [seat.id for seat in grid.seats()]
    if len(seat_ids) < count:
        raise NotEnoughSeatsError(f"grid has {len(seat_ids)} seats, need {count}")
    chosen = frozenset(rng.sample(seat_ids, count))
    stale = grid.active_ids - chosen
    if stale:
        grid = grid.with_active(stale, active=False)
    return grid.with_active(chosen, active=True), chosen
