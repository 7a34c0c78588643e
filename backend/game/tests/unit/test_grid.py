import random

import pytest

from game.logic.enums import GridShape
from game.logic.grid import generate_grid, make_rectangle, make_staircase
from game.logic.settings import SEATS_PER_ROUND, TOTAL_ROUNDS, GameSettings


class TestStaircase:
    def test_shape_matches_requested_size(self):
        grid = make_staircase(10, 14, random.Random(1))
        assert grid.shape == (10, 14)
        assert all(len(row) == 14 for row in grid.rows)

    def test_row_seat_counts_follow_staircase_rule(self):
        """Row r holds between r+3 and r+5 seats from the left, capped at the width."""
        grid = make_staircase(14, 22, random.Random(7))
        for r, row in enumerate(grid.rows):
            seats = sum(1 for cell in row if cell is not None)
            assert min(22, r + 3) <= seats <= min(22, r + 5)
            # seats are packed on the left, placeholders on the right
            assert all(cell is not None for cell in row[:seats])
            assert all(cell is None for cell in row[seats:])

    def test_seat_ids_unique_and_start_with_position(self):
        grid = make_staircase(12, 18, random.Random(3))
        ids = [seat.id for seat in grid.seats()]
        assert len(ids) == len(set(ids))
        for r, row in enumerate(grid.rows):
            for c, seat in enumerate(row):
                if seat is not None:
                    assert seat.id.startswith(f"{r}-{c}-")

    def test_all_seats_start_inactive(self):
        grid = make_staircase(10, 14, random.Random(5))
        assert grid.active_ids == frozenset()

    def test_narrow_grid_caps_every_row(self):
        grid = make_staircase(3, 2, random.Random(0))
        assert all(cell is not None for row in grid.rows for cell in row)


class TestRectangle:
    def test_every_cell_is_a_seat(self):
        grid = make_rectangle(4, 6, random.Random(0))
        assert grid.seat_count == 24
        assert all(cell is not None for row in grid.rows for cell in row)


class TestGenerateGrid:
    @pytest.mark.parametrize(
        ("round_index", "size"),
        [(1, (10, 14)), (2, (11, 16)), (3, (12, 18)), (4, (13, 20)), (5, (14, 22))],
    )
    def test_round_table_shapes(self, round_index, size):
        grid = generate_grid(round_index, GameSettings(), random.Random(round_index))
        assert grid.shape == size

    def test_every_round_has_enough_seats(self):
        settings = GameSettings()
        rng = random.Random(99)
        for round_index in range(1, TOTAL_ROUNDS + 1):
            assert generate_grid(round_index, settings, rng).seat_count >= SEATS_PER_ROUND

    def test_rectangle_shape_uses_fixed_size(self):
        settings = GameSettings(grid_shape=GridShape.RECTANGLE, rectangle_size=(12, 20))
        grid = generate_grid(4, settings, random.Random(0))
        assert grid.shape == (12, 20)
        assert grid.seat_count == 240

    def test_rectangle_without_fixed_size_uses_round_table(self):
        settings = GameSettings(grid_shape=GridShape.RECTANGLE)
        grid = generate_grid(2, settings, random.Random(0))
        assert grid.shape == (11, 16)
        assert grid.seat_count == 11 * 16

    def test_layout_changes_between_generations(self):
        """Shape is stable, the exact seat ids are not."""
        rng = random.Random(42)
        first = generate_grid(1, GameSettings(), rng)
        second = generate_grid(1, GameSettings(), rng)
        assert first.shape == second.shape
        assert first.seat_ids != second.seat_ids

    def test_invalid_round_index_rejected(self):
        with pytest.raises(ValueError, match="round_index"):
            generate_grid(6, GameSettings(), random.Random(0))
