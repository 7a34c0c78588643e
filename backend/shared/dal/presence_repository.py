"""Abstract interface for online-presence tracking."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


class PresenceRepository(ABC):
    """Last-seen timestamps keyed by nickname, used only for an online count."""

    @abstractmethod
    async def touch(self, nickname: str, seen_at: datetime) -> None: ...

    @abstractmethod
    async def count_since(self, since: datetime) -> int: ...
