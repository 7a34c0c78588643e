import random

import pytest

from game.logic.queue import initial_queue_position, next_queue_position


class TestInitialPosition:
    def test_within_default_range(self):
        rng = random.Random(0)
        for _ in range(500):
            assert 3000 <= initial_queue_position(rng) < 9000

    def test_custom_range(self):
        assert initial_queue_position(random.Random(0), (5000, 5001)) == 5000


class TestNextPosition:
    @pytest.mark.parametrize(
        ("position", "low", "high"),
        [
            (5000, 5000 - 1199, 5000 - 700),
            (1000, 1000 - 299, 1000 - 100),
            (101, 101 - 299, 101 - 100),
            (100, 100 - 49, 100 - 10),
        ],
    )
    def test_step_bands(self, position, low, high):
        rng = random.Random(1)
        for _ in range(200):
            nxt = next_queue_position(position, rng)
            assert max(0, low) <= nxt <= high

    def test_never_negative(self):
        rng = random.Random(2)
        for position in range(0, 60):
            assert next_queue_position(position, rng) >= 0

    def test_zero_stays_zero(self):
        assert next_queue_position(0, random.Random(0)) == 0

    def test_countdown_is_monotonic_and_reaches_zero(self):
        rng = random.Random(3)
        position = 5000
        ticks = 0
        while position > 0:
            nxt = next_queue_position(position, rng)
            assert nxt < position
            position = nxt
            ticks += 1
        assert ticks < 100
