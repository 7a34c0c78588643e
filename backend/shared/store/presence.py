"""Presence repository backed by the hosted ``online_users`` table."""

from __future__ import annotations

from typing import TYPE_CHECKING

from shared.dal.presence_repository import PresenceRepository

if TYPE_CHECKING:
    from datetime import datetime

    from shared.store.client import StoreClient

TABLE = "online_users"


class RestPresenceRepository(PresenceRepository):
    def __init__(self, client: StoreClient) -> None:
        self._client = client

    async def touch(self, nickname: str, seen_at: datetime) -> None:
        await self._client.upsert(
            TABLE,
            {"nickname": nickname, "last_seen": seen_at.isoformat()},
            on_conflict="nickname",
        )

    async def count_since(self, since: datetime) -> int:
        return await self._client.count(TABLE, {"select": "nickname", "last_seen": f"gte.{since.isoformat()}"})
