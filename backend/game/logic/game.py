"""
Session-level transitions for one play-through.

    waiting_queue -> verification -> playing -> finished <-> {leaderboard, chat}
                                                 finished -> waiting_queue (restart)

Every function takes the current PlaySession and returns a new one; the
session manager owns the single instance and the timers that call these.
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

from game.logic.enums import RESULT_PHASES, Phase
from game.logic.exceptions import InvalidPhaseError, VerificationPendingError
from game.logic.queue import initial_queue_position, next_queue_position
from game.logic.round import start_round
from game.logic.scoring import total_time
from game.logic.settings import TOTAL_ROUNDS, GameSettings
from game.logic.types import PlaySession
from game.logic.verification import CODE_LENGTH, code_matches, generate_code

if TYPE_CHECKING:
    from collections.abc import Callable

    from game.logic.types import Grid

_SIDE_VIEWS = frozenset({Phase.LEADERBOARD, Phase.CHAT})


def _require_phase(session: PlaySession, *phases: Phase) -> None:
    if session.phase not in phases:
        expected = ", ".join(phases)
        raise InvalidPhaseError(f"expected phase {expected}, got {session.phase}")


def new_session(
    settings: GameSettings | None = None,
    rng: random.Random | None = None,
    nickname: str | None = None,
) -> PlaySession:
    """Create a session waiting in the queue at a random position."""
    game_settings = settings or GameSettings()
    rng = rng or random.Random()
    return PlaySession(
        queue_position=initial_queue_position(rng, game_settings.queue_start_range),
        nickname=nickname,
    )


def tick_queue(session: PlaySession, rng: random.Random) -> PlaySession:
    """Advance the queue countdown by one tick."""
    _require_phase(session, Phase.WAITING_QUEUE)
    return session.model_copy(update={"queue_position": next_queue_position(session.queue_position, rng)})


def enter_verification(session: PlaySession, code: str, now: float) -> PlaySession:
    """Leave the queue, show the first code and start the total-time clock."""
    _require_phase(session, Phase.WAITING_QUEUE)
    if session.queue_position > 0:
        raise InvalidPhaseError(f"queue not finished (position={session.queue_position})")
    return session.model_copy(
        update={
            "phase": Phase.VERIFICATION,
            "verification_code": code,
            "verification_started_at": now,
            "attempt_started_at": now,
        },
    )


def issue_code(session: PlaySession, code: str, now: float) -> PlaySession:
    """Replace the code and restart the per-attempt clock. The total clock keeps running."""
    _require_phase(session, Phase.VERIFICATION)
    return session.model_copy(update={"verification_code": code, "attempt_started_at": now})


def withdraw_code(session: PlaySession) -> PlaySession:
    """Hide the current code while a replacement is pending."""
    _require_phase(session, Phase.VERIFICATION)
    return session.model_copy(update={"verification_code": None})


def check_verification(session: PlaySession, attempt: str) -> bool:
    """Return True when the attempt matches the displayed code."""
    _require_phase(session, Phase.VERIFICATION)
    if session.verification_code is None:
        raise VerificationPendingError("a new code is being issued")
    return code_matches(session.verification_code, attempt)


def pass_verification(session: PlaySession, now: float) -> PlaySession:
    """Record the time spent on the accepted attempt and start playing."""
    _require_phase(session, Phase.VERIFICATION)
    started = session.attempt_started_at if session.attempt_started_at is not None else now
    return session.model_copy(
        update={
            "phase": Phase.PLAYING,
            "verification_code": None,
            "verification_time": max(0.0, now - started),
        },
    )


def submit_verification(
    session: PlaySession,
    attempt: str,
    now: float,
    rng: random.Random,
    *,
    code_length: int = CODE_LENGTH,
    defer_new_code: bool = False,
) -> tuple[PlaySession, bool]:
    """
    Check an attempt. A match enters playing; a mismatch replaces the code and
    restarts only the per-attempt clock. With ``defer_new_code`` the code is
    withdrawn instead and the caller issues the replacement later.
    """
    if check_verification(session, attempt):
        return pass_verification(session, now), True
    if defer_new_code:
        return withdraw_code(session), False
    return issue_code(session, generate_code(rng, code_length), now), False


def refresh_verification(
    session: PlaySession,
    rng: random.Random,
    now: float,
    code_length: int = CODE_LENGTH,
) -> PlaySession:
    return issue_code(session, generate_code(rng, code_length), now)


def advance_round(session: PlaySession, grid_factory: Callable[[int], Grid], now: float) -> PlaySession:
    """Start the next round, or finish after the last one. Round 1 starts from an empty playing session."""
    record = session.current_round
    if record is not None and not record.is_complete:
        raise InvalidPhaseError(f"round {record.round_index} is still in progress")
    next_index = session.round_index + 1
    if next_index > TOTAL_ROUNDS:
        return finish(session, now)
    return start_round(session, next_index, grid_factory(next_index), now)


def finish(session: PlaySession, now: float) -> PlaySession:
    """Seal the play-through after the last round and stop the total clock."""
    _require_phase(session, Phase.PLAYING)
    if len(session.round_times) != TOTAL_ROUNDS:
        raise InvalidPhaseError(f"{len(session.round_times)} of {TOTAL_ROUNDS} rounds completed")
    if session.verification_started_at is None:
        raise InvalidPhaseError("verification never started")
    return session.model_copy(
        update={
            "phase": Phase.FINISHED,
            "finished_at": now,
            "total_time": total_time(session.verification_started_at, now),
        },
    )


def open_view(session: PlaySession, view: Phase) -> PlaySession:
    """Switch to a side view. Results stay untouched."""
    if view not in _SIDE_VIEWS:
        raise ValueError(f"{view} is not a side view")
    _require_phase(session, *RESULT_PHASES)
    return session.model_copy(update={"phase": view})


def close_view(session: PlaySession) -> PlaySession:
    _require_phase(session, *RESULT_PHASES)
    return session.model_copy(update={"phase": Phase.FINISHED})


def set_nickname(session: PlaySession, nickname: str) -> PlaySession:
    return session.model_copy(update={"nickname": nickname})


def restart(session: PlaySession, settings: GameSettings, rng: random.Random) -> PlaySession:
    """Start a new play-through. Only the nickname carries over."""
    _require_phase(session, *RESULT_PHASES)
    return new_session(settings, rng, nickname=session.nickname)
