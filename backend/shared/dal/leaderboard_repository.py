"""Abstract interface for the shared leaderboard of result records."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from shared.dal.models import ResultRecord


class LeaderboardRepository(ABC):
    """Append-only collection of result records. There is no update or delete path."""

    @abstractmethod
    async def add_result(self, record: ResultRecord) -> ResultRecord:
        """Insert a record and return it with its store-assigned id."""

    @abstractmethod
    async def list_totals(self, since: datetime | None = None) -> list[tuple[str, float]]:
        """Return (id, total_time) for every record created at or after ``since``, fastest first."""

    @abstractmethod
    async def list_results(self, since: datetime | None = None, limit: int = 100) -> list[ResultRecord]:
        """Return up to ``limit`` records created at or after ``since``, fastest first."""
