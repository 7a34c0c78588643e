"""
Cancellable scheduled callbacks owned by one play session.

Each TimerKind holds at most one asyncio task. Scheduling a kind replaces its
previous task; leaving a phase cancels every task that phase scheduled, so a
stale tick can never fire into the next phase. A callback that triggers a phase
change from inside its own task is detached rather than cancelled and stops
after returning.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import structlog

from game.logic.exceptions import GameRuleError

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import Iterable

    from game.logic.enums import TimerKind

TimerCallback = Callable[[], Awaitable[None]]


def _stop(task: asyncio.Task[None]) -> None:
    if task is asyncio.current_task():
        return
    if not task.done():
        task.cancel()


class PhaseTimers:
    """Per-session set of one-shot and repeating timers keyed by TimerKind."""

    def __init__(self) -> None:
        self._tasks: dict[TimerKind, asyncio.Task[None]] = {}

    @property
    def active_kinds(self) -> frozenset[TimerKind]:
        return frozenset(kind for kind, task in self._tasks.items() if not task.done())

    def is_active(self, kind: TimerKind) -> bool:
        task = self._tasks.get(kind)
        return task is not None and not task.done()

    def schedule(self, kind: TimerKind, delay: float, callback: TimerCallback) -> None:
        """Run ``callback`` once after ``delay`` seconds."""
        self.cancel(kind)
        self._tasks[kind] = asyncio.create_task(self._run_once(kind, delay, callback))

    def every(self, kind: TimerKind, interval: float, callback: TimerCallback) -> None:
        """Run ``callback`` every ``interval`` seconds until cancelled."""
        self.cancel(kind)
        self._tasks[kind] = asyncio.create_task(self._run_every(kind, interval, callback))

    def cancel(self, kind: TimerKind) -> None:
        task = self._tasks.pop(kind, None)
        if task is not None:
            _stop(task)

    def cancel_all(self, keep: Iterable[TimerKind] = ()) -> None:
        """Cancel every timer except the kinds in ``keep``."""
        kept = frozenset(keep)
        for kind in [k for k in self._tasks if k not in kept]:
            self.cancel(kind)

    def _owns(self, kind: TimerKind) -> bool:
        return self._tasks.get(kind) is asyncio.current_task()

    async def _run_once(self, kind: TimerKind, delay: float, callback: TimerCallback) -> None:
        try:
            await asyncio.sleep(delay)
            if not self._owns(kind):
                return
            del self._tasks[kind]
            await callback()
        except asyncio.CancelledError:
            pass
        except (GameRuleError, RuntimeError, OSError, ConnectionError, ValueError):  # fmt: skip
            logger.exception("timer callback failed", timer=kind)

    async def _run_every(self, kind: TimerKind, interval: float, callback: TimerCallback) -> None:
        try:
            while True:
                await asyncio.sleep(interval)
                if not self._owns(kind):
                    return
                await callback()
        except asyncio.CancelledError:
            pass
        except (GameRuleError, RuntimeError, OSError, ConnectionError, ValueError):  # fmt: skip
            logger.exception("timer callback failed", timer=kind)
