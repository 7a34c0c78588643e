"""Chat repository backed by the hosted ``chat_messages`` table."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from shared.dal.chat_repository import ChatRepository
from shared.dal.errors import StoreError
from shared.dal.models import ChatRecord

if TYPE_CHECKING:
    from datetime import datetime

    from shared.store.client import StoreClient

TABLE = "chat_messages"


def _from_row(row: dict[str, Any]) -> ChatRecord:
    try:
        return ChatRecord(
            id=str(row["id"]),
            nickname=row["nickname"],
            message=row["message"],
            created_at=row["created_at"],
        )
    except (KeyError, TypeError, ValidationError) as e:
        raise StoreError(f"malformed {TABLE} row: {e}") from e


class RestChatRepository(ChatRepository):
    def __init__(self, client: StoreClient) -> None:
        self._client = client

    async def add_message(self, nickname: str, message: str) -> ChatRecord:
        row = await self._client.insert(TABLE, {"nickname": nickname, "message": message})
        return _from_row(row)

    async def recent_messages(self, limit: int = 100) -> list[ChatRecord]:
        rows = await self._client.select(TABLE, {"select": "*", "order": "created_at.desc", "limit": limit})
        return [_from_row(row) for row in reversed(rows)]

    async def messages_since(self, after: datetime) -> list[ChatRecord]:
        rows = await self._client.select(
            TABLE,
            {"select": "*", "order": "created_at.asc", "created_at": f"gte.{after.isoformat()}"},
        )
        return [_from_row(row) for row in rows]
