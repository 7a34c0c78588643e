"""Manage phase timers for every live play session."""

from __future__ import annotations

from typing import TYPE_CHECKING

from game.logic.enums import TimerKind
from game.logic.timer import PhaseTimers

if TYPE_CHECKING:
    from game.logic.timer import TimerCallback

# Survives phase changes; only session cleanup stops it.
_SESSION_SCOPED = frozenset({TimerKind.PRESENCE})


class TimerManager:
    """Own one PhaseTimers per session id.

    The SessionManager decides when timers start and which phase they belong
    to; this class only creates, cancels and cleans them up.
    """

    def __init__(self) -> None:
        self._timers: dict[str, PhaseTimers] = {}

    def has_session(self, session_id: str) -> bool:
        return session_id in self._timers

    def _timers_for(self, session_id: str) -> PhaseTimers:
        timers = self._timers.get(session_id)
        if timers is None:
            timers = PhaseTimers()
            self._timers[session_id] = timers
        return timers

    def schedule(self, session_id: str, kind: TimerKind, delay: float, callback: TimerCallback) -> None:
        self._timers_for(session_id).schedule(kind, delay, callback)

    def every(self, session_id: str, kind: TimerKind, interval: float, callback: TimerCallback) -> None:
        self._timers_for(session_id).every(kind, interval, callback)

    def cancel(self, session_id: str, kind: TimerKind) -> None:
        timers = self._timers.get(session_id)
        if timers is not None:
            timers.cancel(kind)

    def cancel_phase(self, session_id: str) -> None:
        """Cancel every timer owned by the current phase. Session-scoped timers keep running."""
        timers = self._timers.get(session_id)
        if timers is not None:
            timers.cancel_all(keep=_SESSION_SCOPED)

    def active_kinds(self, session_id: str) -> frozenset[TimerKind]:
        timers = self._timers.get(session_id)
        return timers.active_kinds if timers is not None else frozenset()

    def cleanup_session(self, session_id: str) -> None:
        """Cancel all timers and forget the session."""
        timers = self._timers.pop(session_id, None)
        if timers is not None:
            timers.cancel_all()

    def cancel_all(self) -> None:
        for session_id in list(self._timers):
            self.cleanup_session(session_id)
