"""
Round-level transitions: start, seat activation and seat taps.

Reaction time is measured from the moment the round's seats open to the
second qualifying tap.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from game.logic.activation import open_random_seats
from game.logic.enums import Phase, TapOutcome
from game.logic.exceptions import InvalidPhaseError
from game.logic.scoring import reaction_time
from game.logic.settings import SEATS_PER_ROUND
from game.logic.types import PlaySession, RoundRecord

if TYPE_CHECKING:
    import random

    from game.logic.types import Grid


def _require_round(session: PlaySession) -> RoundRecord:
    if session.phase != Phase.PLAYING or session.current_round is None:
        raise InvalidPhaseError(f"no round in progress (phase={session.phase})")
    return session.current_round


def start_round(session: PlaySession, round_index: int, grid: Grid, now: float) -> PlaySession:
    """Install a freshly generated grid as the current round. No seats are open yet."""
    if session.phase != Phase.PLAYING:
        raise InvalidPhaseError(f"cannot start a round in phase {session.phase}")
    record = RoundRecord(round_index=round_index, grid=grid, started_at=now)
    return session.model_copy(update={"current_round": record})


def activate_round(session: PlaySession, rng: random.Random, now: float) -> PlaySession:
    """Open the round's seats and start its reaction clock. Re-activation is a no-op."""
    record = _require_round(session)
    if record.is_activated:
        return session
    grid, open_ids = open_random_seats(record.grid, rng)
    record = record.model_copy(update={"grid": grid, "open_seat_ids": open_ids, "activated_at": now})
    return session.model_copy(update={"current_round": record})


def select_seat(session: PlaySession, seat_id: str, now: float) -> tuple[PlaySession, TapOutcome]:
    """
    Register a tap on a seat.

    Taps on closed or already-selected seats, taps before activation and taps
    after the round is sealed leave the session unchanged.
    """
    record = session.current_round
    if (
        session.phase != Phase.PLAYING
        or record is None
        or record.activated_at is None
        or record.is_complete
        or seat_id not in record.open_seat_ids
        or seat_id in record.selected_seat_ids
    ):
        return session, TapOutcome.IGNORED

    selected = record.selected_seat_ids | {seat_id}
    grid = record.grid.with_active(frozenset({seat_id}), active=False)
    update: dict[str, object] = {"grid": grid, "selected_seat_ids": selected}
    if len(selected) < SEATS_PER_ROUND:
        return session.model_copy(update={"current_round": record.model_copy(update=update)}), TapOutcome.SELECTED

    elapsed = reaction_time(record.activated_at, now)
    update["reaction_time"] = elapsed
    sealed = record.model_copy(update=update)
    return (
        session.model_copy(update={"current_round": sealed, "round_times": (*session.round_times, elapsed)}),
        TapOutcome.ROUND_COMPLETE,
    )
