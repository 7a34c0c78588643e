"""
Frozen pydantic models for play-session state.

Every transition in game.logic.game and game.logic.round returns a new
PlaySession built with model_copy; nothing here is mutated in place.
Timestamps are seconds on the session manager's monotonic clock.
"""

from __future__ import annotations

from collections.abc import Iterator

from pydantic import BaseModel, ConfigDict

from game.logic.enums import Phase
from game.logic.settings import SEATS_PER_ROUND


class Seat(BaseModel):
    """A real seat in a grid. Only ``active`` changes during a round."""

    model_config = ConfigDict(frozen=True)

    id: str
    active: bool = False


class Grid(BaseModel):
    """Rows of seats; None marks an empty placeholder cell."""

    model_config = ConfigDict(frozen=True)

    rows: tuple[tuple[Seat | None, ...], ...]

    @property
    def shape(self) -> tuple[int, int]:
        return len(self.rows), len(self.rows[0]) if self.rows else 0

    def seats(self) -> Iterator[Seat]:
        """Iterate real seats in row-major order."""
        for row in self.rows:
            for seat in row:
                if seat is not None:
                    yield seat

    @property
    def seat_ids(self) -> frozenset[str]:
        return frozenset(seat.id for seat in self.seats())

    @property
    def seat_count(self) -> int:
        return sum(1 for _ in self.seats())

    @property
    def active_ids(self) -> frozenset[str]:
        return frozenset(seat.id for seat in self.seats() if seat.active)

    def with_active(self, seat_ids: frozenset[str], *, active: bool) -> Grid:
        """Return a copy with the given seats' active flag set."""
        rows = tuple(
            tuple(
                seat.model_copy(update={"active": active}) if seat is not None and seat.id in seat_ids else seat
                for seat in row
            )
            for row in self.rows
        )
        return Grid(rows=rows)

    def to_wire(self) -> list[list[dict[str, object] | None]]:
        return [[seat.model_dump() if seat is not None else None for seat in row] for row in self.rows]


class RoundRecord(BaseModel):
    """One of the five timed rounds of a play-through."""

    model_config = ConfigDict(frozen=True)

    round_index: int
    grid: Grid
    started_at: float
    open_seat_ids: frozenset[str] = frozenset()
    selected_seat_ids: frozenset[str] = frozenset()
    activated_at: float | None = None
    reaction_time: float | None = None

    @property
    def is_activated(self) -> bool:
        return self.activated_at is not None

    @property
    def is_complete(self) -> bool:
        return self.reaction_time is not None and len(self.selected_seat_ids) == SEATS_PER_ROUND


class PlaySession(BaseModel):
    """Aggregate state of one play-through, from queue to results."""

    model_config = ConfigDict(frozen=True)

    phase: Phase = Phase.WAITING_QUEUE
    queue_position: int
    nickname: str | None = None

    verification_code: str | None = None
    verification_started_at: float | None = None  # start of the total-time clock
    attempt_started_at: float | None = None  # restarts on every new code
    verification_time: float | None = None

    current_round: RoundRecord | None = None
    round_times: tuple[float, ...] = ()

    finished_at: float | None = None
    total_time: float | None = None

    @property
    def round_index(self) -> int:
        return self.current_round.round_index if self.current_round is not None else 0

    def elapsed(self, now: float) -> float:
        """Seconds on the total-time clock, 0 before verification starts."""
        if self.verification_started_at is None:
            return 0.0
        end = self.finished_at if self.finished_at is not None else now
        return max(0.0, end - self.verification_started_at)
