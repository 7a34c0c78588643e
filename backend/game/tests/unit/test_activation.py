import random

import pytest

from game.logic.activation import open_random_seats
from game.logic.exceptions import NotEnoughSeatsError
from game.logic.grid import make_rectangle, make_staircase
from game.logic.types import Grid, Seat


class TestOpenRandomSeats:
    def test_opens_exactly_two_distinct_present_seats(self):
        rng = random.Random(11)
        for _ in range(50):
            grid = make_staircase(10, 14, rng)
            opened, ids = open_random_seats(grid, rng)
            assert len(ids) == 2
            assert ids <= grid.seat_ids
            assert opened.active_ids == ids

    def test_original_grid_is_unchanged(self):
        grid = make_rectangle(2, 3, random.Random(0))
        open_random_seats(grid, random.Random(0))
        assert grid.active_ids == frozenset()

    def test_previously_active_seats_are_cleared(self):
        rng = random.Random(3)
        grid = make_rectangle(3, 3, rng)
        first, first_ids = open_random_seats(grid, rng)
        second, second_ids = open_random_seats(first, rng)
        assert second.active_ids == second_ids

    def test_exactly_two_seats_are_both_opened(self):
        grid = Grid(rows=((Seat(id="a"), None, Seat(id="b")),))
        _, ids = open_random_seats(grid, random.Random(0))
        assert ids == frozenset({"a", "b"})

    def test_fewer_than_two_seats_raises(self):
        grid = Grid(rows=((Seat(id="only"), None),))
        with pytest.raises(NotEnoughSeatsError):
            open_random_seats(grid, random.Random(0))

    def test_selection_is_uniform_enough(self):
        """Every seat of a small grid gets picked at some point."""
        rng = random.Random(5)
        grid = make_rectangle(2, 3, rng)
        picked: set[str] = set()
        for _ in range(200):
            picked |= open_random_seats(grid, rng)[1]
        assert picked == grid.seat_ids
