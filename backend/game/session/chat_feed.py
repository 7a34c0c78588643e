"""
Shared chat subscription.

One polling task per process reads new rows from the hosted store while at
least one session has the chat view open. Messages sent through this server
are published locally as soon as the insert returns, so the poller usually
sees them a second time; the log ignores any id it already holds.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections import deque
from typing import TYPE_CHECKING

import structlog

from shared.dal.errors import StoreError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable
    from datetime import datetime

    from game.session.sync import SyncAdapter
    from shared.dal.models import ChatRecord

    ChatListener = Callable[[list[ChatRecord]], Awaitable[None]]

logger = structlog.get_logger()

DEFAULT_POLL_SECONDS = 2.0
DEFAULT_HISTORY_SIZE = 100


class ChatLog:
    """Chronological, size-capped chat history with idempotent append."""

    def __init__(self, max_size: int = DEFAULT_HISTORY_SIZE) -> None:
        self._records: deque[ChatRecord] = deque(maxlen=max_size)
        self._ids: set[str] = set()

    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> tuple[ChatRecord, ...]:
        return tuple(self._records)

    def extend(self, records: Iterable[ChatRecord]) -> list[ChatRecord]:
        """Append unseen records and return only the ones that were new."""
        added = []
        for record in records:
            if record.id in self._ids:
                continue
            if len(self._records) == self._records.maxlen:
                self._ids.discard(self._records[0].id)
            self._records.append(record)
            self._ids.add(record.id)
            added.append(record)
        return added


class ChatFeed:
    def __init__(
        self,
        sync: SyncAdapter,
        *,
        poll_seconds: float = DEFAULT_POLL_SECONDS,
        history_size: int = DEFAULT_HISTORY_SIZE,
    ) -> None:
        self._sync = sync
        self._poll_seconds = poll_seconds
        self._log = ChatLog(history_size)
        self._listeners: dict[str, ChatListener] = {}
        self._poll_task: asyncio.Task[None] | None = None
        self._loaded = False
        # newest created_at read back from the store; local publishes never move it
        self._polled_until: datetime | None = None

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners)

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    async def subscribe(self, subscriber_id: str, listener: ChatListener) -> tuple[ChatRecord, ...]:
        """Register a listener and return the current history. Raises StoreError if the first load fails."""
        if not self._loaded:
            self._log.extend(self._note_polled(await self._sync.recent_chat()))
            self._loaded = True
        self._listeners[subscriber_id] = listener
        if not self.is_polling:
            self._poll_task = asyncio.create_task(self._poll_loop())
        return self._log.records

    def unsubscribe(self, subscriber_id: str) -> None:
        self._listeners.pop(subscriber_id, None)
        if not self._listeners:
            self._stop_polling()

    async def publish(self, record: ChatRecord) -> None:
        """Deliver a message inserted through this server without waiting for the next poll."""
        added = self._log.extend([record])
        if added:
            await self._fan_out(added)

    async def poll_once(self) -> list[ChatRecord]:
        after = self._polled_until
        records = await self._sync.chat_since(after) if after is not None else await self._sync.recent_chat()
        added = self._log.extend(self._note_polled(records))
        if added:
            await self._fan_out(added)
        return added

    def _note_polled(self, records: list[ChatRecord]) -> list[ChatRecord]:
        for record in records:
            if self._polled_until is None or record.created_at > self._polled_until:
                self._polled_until = record.created_at
        return records

    async def _poll_loop(self) -> None:
        while self._listeners:
            await asyncio.sleep(self._poll_seconds)
            try:
                await self.poll_once()
            except StoreError:
                logger.warning("chat poll failed", exc_info=True)

    async def _fan_out(self, records: list[ChatRecord]) -> None:
        for subscriber_id, listener in list(self._listeners.items()):
            try:
                await listener(records)
            except (ConnectionError, RuntimeError):
                logger.warning("chat delivery failed", subscriber_id=subscriber_id)
                self._listeners.pop(subscriber_id, None)

    def _stop_polling(self) -> None:
        task = self._poll_task
        self._poll_task = None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    async def aclose(self) -> None:
        self._listeners.clear()
        task = self._poll_task
        self._poll_task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
