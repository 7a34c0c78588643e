"""Centralized gameplay settings: round sizes, shape policy and phase delays."""

from __future__ import annotations

from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from game.logic.enums import GridShape

TOTAL_ROUNDS = 5
SEATS_PER_ROUND = 2

# Staircase row r holds r + 3..5 seats, so row 0 alone satisfies SEATS_PER_ROUND
# whenever the grid is at least this wide.
_MIN_COLUMNS = SEATS_PER_ROUND


class GameSettings(BaseModel):
    """
    Configuration for one play-through.

    Defaults match the production game: a staircase seating chart growing
    from 10x14 to 14x22 over five rounds, an 0.8s queue tick and the 1.0s /
    1.2s activation and settle delays.
    """

    model_config = ConfigDict(frozen=True)

    # --- Grid ---
    grid_shape: GridShape = GridShape.STAIRCASE
    round_sizes: tuple[tuple[int, int], ...] = ((10, 14), (11, 16), (12, 18), (13, 20), (14, 22))
    # rectangle variant: one fixed size for every round (None keeps the round table)
    rectangle_size: tuple[int, int] | None = None

    # --- Queue ---
    queue_start_range: tuple[int, int] = (3000, 9000)  # [low, high)
    queue_tick_seconds: float = Field(default=0.8, gt=0)
    queue_exit_delay_seconds: float = Field(default=0.2, ge=0)

    # --- Verification ---
    verification_code_length: int = Field(default=6, ge=1, le=32)
    verification_retry_delay_seconds: float = Field(default=0.0, ge=0)

    # --- Rounds ---
    seat_activation_delay_seconds: float = Field(default=1.0, ge=0)
    round_settle_delay_seconds: float = Field(default=1.2, ge=0)

    # cosmetic elapsed-time display; 0 disables
    elapsed_tick_seconds: float = Field(default=0.1, ge=0)

    @model_validator(mode="after")
    def _validate_layout(self) -> Self:
        if len(self.round_sizes) != TOTAL_ROUNDS:
            raise ValueError(f"round_sizes must have {TOTAL_ROUNDS} entries, got {len(self.round_sizes)}")
        sizes = [*self.round_sizes]
        if self.rectangle_size is not None:
            sizes.append(self.rectangle_size)
        for rows, cols in sizes:
            if rows < 1 or cols < _MIN_COLUMNS:
                raise ValueError(f"grid {rows}x{cols} cannot hold {SEATS_PER_ROUND} seats")
        low, high = self.queue_start_range
        if not 0 < low < high:
            raise ValueError(f"queue_start_range must satisfy 0 < low < high, got {self.queue_start_range}")
        return self

    def grid_size(self, round_index: int) -> tuple[int, int]:
        """Return (rows, columns) for a 1-based round index."""
        if not 1 <= round_index <= TOTAL_ROUNDS:
            raise ValueError(f"round_index must be 1-{TOTAL_ROUNDS}, got {round_index}")
        if self.grid_shape == GridShape.RECTANGLE and self.rectangle_size is not None:
            return self.rectangle_size
        return self.round_sizes[round_index - 1]
