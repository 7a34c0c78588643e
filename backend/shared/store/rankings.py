"""Leaderboard repository backed by the hosted ``rankings`` table."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from shared.dal.errors import StoreError
from shared.dal.leaderboard_repository import LeaderboardRepository
from shared.dal.models import ResultRecord

if TYPE_CHECKING:
    from datetime import datetime

    from shared.store.client import StoreClient

TABLE = "rankings"


def _to_row(record: ResultRecord) -> dict[str, Any]:
    return {
        "nickname": record.nickname,
        "total_time": record.total_time,
        "captcha_time": record.verification_time,
        "round_times": list(record.round_times),
        "created_at": record.created_at.isoformat(),
    }


def _from_row(row: dict[str, Any]) -> ResultRecord:
    try:
        return ResultRecord(
            id=str(row["id"]),
            nickname=row["nickname"],
            total_time=row["total_time"],
            verification_time=row.get("captcha_time") or 0.0,
            round_times=tuple(row.get("round_times") or ()),
            created_at=row["created_at"],
        )
    except (KeyError, TypeError, ValidationError) as e:
        raise StoreError(f"malformed {TABLE} row: {e}") from e


def _window(since: datetime | None) -> dict[str, str]:
    return {"created_at": f"gte.{since.isoformat()}"} if since is not None else {}


class RestLeaderboardRepository(LeaderboardRepository):
    def __init__(self, client: StoreClient) -> None:
        self._client = client

    async def add_result(self, record: ResultRecord) -> ResultRecord:
        row = await self._client.insert(TABLE, _to_row(record))
        return _from_row(row)

    async def list_totals(self, since: datetime | None = None) -> list[tuple[str, float]]:
        rows = await self._client.select(
            TABLE,
            {"select": "id,total_time", "order": "total_time.asc", **_window(since)},
        )
        try:
            return [(str(row["id"]), float(row["total_time"])) for row in rows]
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError(f"malformed {TABLE} row: {e}") from e

    async def list_results(self, since: datetime | None = None, limit: int = 100) -> list[ResultRecord]:
        rows = await self._client.select(
            TABLE,
            {"select": "*", "order": "total_time.asc", "limit": limit, **_window(since)},
        )
        return [_from_row(row) for row in rows]
