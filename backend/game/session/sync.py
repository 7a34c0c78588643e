"""
Realtime sync adapter: the single seam between play sessions and the hosted store.

Missing credentials are detected once, when the adapter is built. An
unconfigured adapter keeps every dependent feature inert: leaderboards come
back empty, rank is unknown, presence writes are skipped and chat is off.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

import structlog
from pydantic import BaseModel, ConfigDict

from game.logic.enums import LeaderboardPeriod
from game.logic.scoring import rank_percentile, rank_position, window_start
from shared.dal.errors import StoreError, StoreUnconfiguredError
from shared.store import RestChatRepository, RestLeaderboardRepository, RestPresenceRepository, StoreClient

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine
    from typing import Any

    from shared.dal import ChatRecord, ChatRepository, LeaderboardRepository, PresenceRepository, ResultRecord

logger = structlog.get_logger()

DEFAULT_TIMEZONE = "Asia/Seoul"
LEADERBOARD_PAGE_SIZE = 100
CHAT_HISTORY_SIZE = 100
ONLINE_WINDOW_SECONDS = 300


class RankInfo(BaseModel):
    """Standing of a finished play-through. None means unknown or first challenger."""

    model_config = ConfigDict(frozen=True)

    percentile: float | None = None
    today_rank: int | None = None


class SyncAdapter:
    def __init__(
        self,
        leaderboard: LeaderboardRepository | None = None,
        chat: ChatRepository | None = None,
        presence: PresenceRepository | None = None,
        *,
        client: StoreClient | None = None,
        timezone: str = DEFAULT_TIMEZONE,
        page_size: int = LEADERBOARD_PAGE_SIZE,
        online_window_seconds: float = ONLINE_WINDOW_SECONDS,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._leaderboard = leaderboard
        self._chat = chat
        self._presence = presence
        self._client = client
        self._tz = ZoneInfo(timezone)
        self._page_size = page_size
        self._online_window = timedelta(seconds=online_window_seconds)
        self._now = now or (lambda: datetime.now(UTC))
        self._background: set[asyncio.Task[None]] = set()

    @property
    def configured(self) -> bool:
        return self._leaderboard is not None and self._chat is not None and self._presence is not None

    @property
    def tz(self) -> ZoneInfo:
        return self._tz

    def now(self) -> datetime:
        return self._now()

    def _require[R](self, repository: R | None) -> R:
        if repository is None:
            raise StoreUnconfiguredError("hosted store credentials are not configured")
        return repository

    # --- rankings ---

    async def save_result(self, record: ResultRecord) -> ResultRecord:
        saved = await self._require(self._leaderboard).add_result(record)
        logger.info("result saved", result_id=saved.id, total_time=saved.total_time)
        return saved

    async def rank_of(self, record: ResultRecord) -> RankInfo:
        """
        Percentile among all stored results and position among today's.

        A stored record (one with an id) is excluded from its own peer set.
        """
        if not self.configured:
            return RankInfo()
        leaderboard = self._require(self._leaderboard)
        all_totals = await leaderboard.list_totals()
        today = window_start(LeaderboardPeriod.DAILY, self._now(), self._tz)
        today_totals = await leaderboard.list_totals(since=today)

        def peers(totals: list[tuple[str, float]]) -> list[float]:
            return [total for result_id, total in totals if record.id is None or result_id != record.id]

        today_peers = peers(today_totals)
        return RankInfo(
            percentile=rank_percentile(record.total_time, peers(all_totals)),
            today_rank=rank_position(record.total_time, today_peers),
        )

    async def leaderboard(self, period: LeaderboardPeriod) -> list[ResultRecord]:
        if not self.configured:
            return []
        since = window_start(period, self._now(), self._tz)
        return await self._require(self._leaderboard).list_results(since=since, limit=self._page_size)

    # --- chat ---

    async def recent_chat(self) -> list[ChatRecord]:
        if not self.configured:
            return []
        return await self._require(self._chat).recent_messages(limit=CHAT_HISTORY_SIZE)

    async def chat_since(self, after: datetime) -> list[ChatRecord]:
        if not self.configured:
            return []
        return await self._require(self._chat).messages_since(after)

    async def post_chat(self, nickname: str, message: str) -> ChatRecord:
        return await self._require(self._chat).add_message(nickname, message)

    # --- presence ---

    async def touch_presence(self, nickname: str) -> None:
        if not self.configured:
            return
        await self._require(self._presence).touch(nickname, self._now())

    async def online_count(self) -> int | None:
        """Players seen within the online window, or None when the store is off."""
        if not self.configured:
            return None
        return await self._require(self._presence).count_since(self._now() - self._online_window)

    # --- background writes ---

    def fire_and_forget(self, coro: Coroutine[Any, Any, None], action: str) -> None:
        """Run ``coro`` in the background. Store and connection failures are logged, never raised."""
        task = asyncio.create_task(self._guarded(coro, action))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    @staticmethod
    async def _guarded(coro: Coroutine[Any, Any, None], action: str) -> None:
        try:
            await coro
        except (StoreError, ConnectionError, RuntimeError):
            logger.warning("background task failed", action=action, exc_info=True)

    async def drain(self) -> None:
        """Wait for pending background writes."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        if self._client is not None:
            await self._client.aclose()


def build_sync_adapter(
    store_url: str | None,
    store_api_key: str | None,
    *,
    timeout: float = 10.0,
    timezone: str = DEFAULT_TIMEZONE,
    page_size: int = LEADERBOARD_PAGE_SIZE,
    online_window_seconds: float = ONLINE_WINDOW_SECONDS,
) -> SyncAdapter:
    """Build a REST-backed adapter, or an inert one when either credential is missing."""
    if not store_url or not store_api_key:
        logger.warning("hosted store not configured, leaderboard, chat and presence are disabled")
        return SyncAdapter(timezone=timezone, page_size=page_size, online_window_seconds=online_window_seconds)
    client = StoreClient(store_url, store_api_key, timeout=timeout)
    return SyncAdapter(
        RestLeaderboardRepository(client),
        RestChatRepository(client),
        RestPresenceRepository(client),
        client=client,
        timezone=timezone,
        page_size=page_size,
        online_window_seconds=online_window_seconds,
    )
