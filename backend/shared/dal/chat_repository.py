"""Abstract interface for chat message persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from shared.dal.models import ChatRecord


class ChatRepository(ABC):
    @abstractmethod
    async def add_message(self, nickname: str, message: str) -> ChatRecord: ...

    @abstractmethod
    async def recent_messages(self, limit: int = 100) -> list[ChatRecord]:
        """Return the newest ``limit`` messages in chronological order."""

    @abstractmethod
    async def messages_since(self, after: datetime) -> list[ChatRecord]:
        """Return messages created at or after ``after`` in chronological order.

        The bound is inclusive so messages sharing the newest timestamp are not
        lost; callers dedupe by id.
        """
