from __future__ import annotations

import random
import time
from collections import Counter
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel

from game.logic import game as transitions
from game.logic.enums import RESULT_PHASES, LeaderboardPeriod, Phase, TapOutcome, TimerKind
from game.logic.exceptions import (
    InvalidPhaseError,
    NicknameRequiredError,
    NoSessionError,
    ResultAlreadySavedError,
    SaveInProgressError,
)
from game.logic.grid import generate_grid
from game.logic.round import activate_round, select_seat
from game.logic.scoring import update_personal_stats
from game.logic.settings import TOTAL_ROUNDS, GameSettings
from game.logic.validation import normalize_chat_message, normalize_nickname
from game.logic.verification import generate_code
from game.messaging.types import (
    ChatEntry,
    ChatHistoryMessage,
    ChatMessagesMessage,
    ElapsedMessage,
    ErrorMessage,
    GameFinishedMessage,
    LeaderboardEntry,
    LeaderboardMessage,
    NicknameSetMessage,
    OnlineCountMessage,
    PhaseChangedMessage,
    PongMessage,
    QueueMessage,
    RankMessage,
    ResultSavedMessage,
    RoundCompleteMessage,
    RoundStartedMessage,
    SeatSelectedMessage,
    SeatsOpenedMessage,
    SessionErrorCode,
    SessionStartedMessage,
    VerificationCodeMessage,
    VerificationResultMessage,
)
from game.session.chat_feed import ChatFeed
from game.session.models import PlayerSession
from game.session.sync import RankInfo, SyncAdapter
from game.session.timer_manager import TimerManager
from shared.dal.errors import StoreError, StoreUnconfiguredError
from shared.dal.models import ResultRecord
from shared.storage import MemoryStatsStore

if TYPE_CHECKING:
    from collections.abc import Callable

    from game.logic.types import Grid, PlaySession
    from game.messaging.protocol import ConnectionProtocol
    from shared.dal.models import ChatRecord
    from shared.storage import StatsStore

logger = structlog.get_logger()

DEFAULT_PRESENCE_INTERVAL_SECONDS = 60.0
DEFAULT_MAX_SESSIONS = 1000


class SessionManager:
    """Own every live play session and drive it through its phases.

    Pure transitions come from game.logic; this class adds the clock, the
    phase-owned timers, the outgoing messages and the hand-off to the stores.
    Each timer callback re-checks phase and round before acting, so a callback
    that lost a race with a phase change does nothing.
    """

    def __init__(
        self,
        sync: SyncAdapter | None = None,
        stats_store: StatsStore | None = None,
        settings: GameSettings | None = None,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
        chat_feed: ChatFeed | None = None,
        presence_interval_seconds: float = DEFAULT_PRESENCE_INTERVAL_SECONDS,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
    ) -> None:
        self._sync = sync or SyncAdapter()
        self._stats_store = stats_store or MemoryStatsStore()
        self._settings = settings or GameSettings()
        self._rng = rng or random.Random()
        self._clock = clock
        self._chat_feed = chat_feed or ChatFeed(self._sync)
        self._presence_interval = presence_interval_seconds
        self._max_sessions = max_sessions
        self._sessions: dict[str, PlayerSession] = {}
        self._timers = TimerManager()

    @property
    def settings(self) -> GameSettings:
        return self._settings

    @property
    def sync(self) -> SyncAdapter:
        return self._sync

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    def phase_counts(self) -> dict[str, int]:
        return dict(Counter(player.state.phase.value for player in self._sessions.values()))

    def get_session(self, session_id: str) -> PlayerSession | None:
        return self._sessions.get(session_id)

    def active_timers(self, session_id: str) -> frozenset[TimerKind]:
        return self._timers.active_kinds(session_id)

    def _require_session(self, connection: ConnectionProtocol) -> PlayerSession:
        player = self._sessions.get(connection.connection_id)
        if player is None:
            raise NoSessionError("no play session for this connection")
        return player

    async def _send(self, player: PlayerSession, message: BaseModel) -> None:
        await player.connection.send_message(message.model_dump())

    async def _send_error(self, connection: ConnectionProtocol, code: SessionErrorCode, message: str) -> None:
        logger.warning("session error sent to client", error_code=code.value, error_message=message)
        await connection.send_message(ErrorMessage(code=code, message=message).model_dump())

    async def _send_phase(self, player: PlayerSession) -> None:
        await self._send(player, PhaseChangedMessage(phase=player.state.phase))

    def _save_stats(self, player: PlayerSession) -> None:
        """Best-effort write of personal stats."""
        try:
            self._stats_store.save(player.player_id, player.stats)
        except OSError:
            logger.exception("failed to save personal stats", player_id=player.player_id)

    # --- lifecycle ---

    async def start_session(self, connection: ConnectionProtocol, player_id: str) -> None:
        """Create a play session for a new connection and put it in the queue."""
        if len(self._sessions) >= self._max_sessions:
            await self._send_error(connection, SessionErrorCode.SERVER_FULL, "Server at capacity")
            await connection.close(code=4003, reason="server_full")
            return

        stats = self._stats_store.load(player_id)
        player = PlayerSession(
            connection=connection,
            player_id=player_id,
            state=transitions.new_session(self._settings, self._rng, nickname=stats.nickname),
            stats=stats,
        )
        self._sessions[player.session_id] = player
        logger.info("play session started", player_id=player_id)

        await self._send(
            player,
            SessionStartedMessage(
                nickname=stats.nickname,
                best_time=stats.best_time,
                average_time=stats.average_time,
                store_configured=self._sync.configured,
            ),
        )
        self._start_presence(player)
        await self._enter_queue(player)

    async def end_session(self, connection: ConnectionProtocol) -> None:
        player = self._sessions.pop(connection.connection_id, None)
        if player is None:
            return
        self._timers.cleanup_session(player.session_id)
        self._chat_feed.unsubscribe(player.session_id)
        logger.info("play session ended", phase=player.state.phase)

    async def aclose(self) -> None:
        """Stop every timer and subscription and flush background writes."""
        self._timers.cancel_all()
        await self._chat_feed.aclose()
        await self._sync.aclose()

    # --- waiting queue ---

    async def _enter_queue(self, player: PlayerSession) -> None:
        sid = player.session_id
        self._timers.cancel_phase(sid)
        await self._send_phase(player)
        await self._send(player, QueueMessage(position=player.state.queue_position))
        self._timers.every(
            sid,
            TimerKind.QUEUE_TICK,
            self._settings.queue_tick_seconds,
            lambda s=sid: self._on_queue_tick(s),
        )

    async def _on_queue_tick(self, session_id: str) -> None:
        player = self._sessions.get(session_id)
        if player is None or player.state.phase != Phase.WAITING_QUEUE:
            return
        player.state = transitions.tick_queue(player.state, self._rng)
        await self._send(player, QueueMessage(position=player.state.queue_position))
        if player.state.queue_position == 0:
            self._timers.cancel(session_id, TimerKind.QUEUE_TICK)
            self._timers.schedule(
                session_id,
                TimerKind.QUEUE_EXIT,
                self._settings.queue_exit_delay_seconds,
                lambda s=session_id: self._on_queue_exit(s),
            )

    async def _on_queue_exit(self, session_id: str) -> None:
        player = self._sessions.get(session_id)
        if player is None or player.state.phase != Phase.WAITING_QUEUE or player.state.queue_position > 0:
            return
        await self._enter_verification(player)

    # --- verification ---

    def _new_code(self) -> str:
        return generate_code(self._rng, self._settings.verification_code_length)

    async def _enter_verification(self, player: PlayerSession) -> None:
        self._timers.cancel_phase(player.session_id)
        player.state = transitions.enter_verification(player.state, self._new_code(), self._clock())
        logger.info("verification started")
        await self._send_phase(player)
        await self._send_code(player)
        self._start_elapsed_ticker(player)

    async def _send_code(self, player: PlayerSession) -> None:
        code = player.state.verification_code
        if code is not None:
            await self._send(player, VerificationCodeMessage(code=code))

    async def submit_verification(self, connection: ConnectionProtocol, attempt: str) -> None:
        player = self._require_session(connection)
        retry_delay = self._settings.verification_retry_delay_seconds
        player.state, passed = transitions.submit_verification(
            player.state,
            attempt,
            self._clock(),
            self._rng,
            code_length=self._settings.verification_code_length,
            defer_new_code=retry_delay > 0,
        )
        await self._send(
            player,
            VerificationResultMessage(passed=passed, verification_time=player.state.verification_time),
        )
        if passed:
            logger.info("verification passed", verification_time=player.state.verification_time)
            await self._enter_playing(player)
        elif retry_delay > 0:
            self._timers.schedule(
                player.session_id,
                TimerKind.VERIFICATION_RETRY,
                retry_delay,
                lambda s=player.session_id: self._on_verification_retry(s),
            )
        else:
            await self._send_code(player)

    async def _on_verification_retry(self, session_id: str) -> None:
        player = self._sessions.get(session_id)
        if player is None or player.state.phase != Phase.VERIFICATION or player.state.verification_code is not None:
            return
        player.state = transitions.refresh_verification(
            player.state,
            self._rng,
            self._clock(),
            self._settings.verification_code_length,
        )
        await self._send_code(player)

    async def refresh_code(self, connection: ConnectionProtocol) -> None:
        """Replace the code on request. The total clock keeps running."""
        player = self._require_session(connection)
        player.state = transitions.refresh_verification(
            player.state,
            self._rng,
            self._clock(),
            self._settings.verification_code_length,
        )
        self._timers.cancel(player.session_id, TimerKind.VERIFICATION_RETRY)
        await self._send_code(player)

    # --- rounds ---

    def _grid_for(self, round_index: int) -> Grid:
        return generate_grid(round_index, self._settings, self._rng)

    async def _enter_playing(self, player: PlayerSession) -> None:
        self._timers.cancel_phase(player.session_id)
        await self._send_phase(player)
        self._start_elapsed_ticker(player)
        await self._advance(player)

    async def _advance(self, player: PlayerSession) -> None:
        """Start the next round, or finish after the last one."""
        player.state = transitions.advance_round(player.state, self._grid_for, self._clock())
        if player.state.phase == Phase.FINISHED:
            await self._finish(player)
            return

        record = player.state.current_round
        if record is None:
            return
        await self._send(
            player,
            RoundStartedMessage(
                round_index=record.round_index,
                total_rounds=TOTAL_ROUNDS,
                grid=record.grid.to_wire(),
            ),
        )
        self._timers.schedule(
            player.session_id,
            TimerKind.SEAT_ACTIVATION,
            self._settings.seat_activation_delay_seconds,
            lambda s=player.session_id, r=record.round_index: self._on_seat_activation(s, r),
        )

    def _in_round(self, player: PlayerSession | None, round_index: int) -> bool:
        return player is not None and player.state.phase == Phase.PLAYING and player.state.round_index == round_index

    async def _on_seat_activation(self, session_id: str, round_index: int) -> None:
        player = self._sessions.get(session_id)
        if player is None or not self._in_round(player, round_index):
            return
        player.state = activate_round(player.state, self._rng, self._clock())
        record = player.state.current_round
        if record is None:
            return
        await self._send(player, SeatsOpenedMessage(round_index=round_index, seat_ids=sorted(record.open_seat_ids)))

    async def tap_seat(self, connection: ConnectionProtocol, seat_id: str) -> None:
        """Register a tap. Taps that do not count are dropped without a reply."""
        player = self._sessions.get(connection.connection_id)
        if player is None:
            return
        player.state, outcome = select_seat(player.state, seat_id, self._clock())
        if outcome == TapOutcome.IGNORED:
            return

        record = player.state.current_round
        if record is None:
            return
        await self._send(
            player,
            SeatSelectedMessage(
                round_index=record.round_index,
                seat_id=seat_id,
                selected_count=len(record.selected_seat_ids),
            ),
        )
        if outcome != TapOutcome.ROUND_COMPLETE or record.reaction_time is None:
            return

        logger.info("round complete", round_index=record.round_index, reaction_time=record.reaction_time)
        await self._send(
            player,
            RoundCompleteMessage(round_index=record.round_index, reaction_time=record.reaction_time),
        )
        self._timers.schedule(
            player.session_id,
            TimerKind.ROUND_SETTLE,
            self._settings.round_settle_delay_seconds,
            lambda s=player.session_id, r=record.round_index: self._on_round_settle(s, r),
        )

    async def _on_round_settle(self, session_id: str, round_index: int) -> None:
        player = self._sessions.get(session_id)
        if player is None or not self._in_round(player, round_index):
            return
        record = player.state.current_round
        if record is None or not record.is_complete:
            return
        await self._advance(player)

    # --- elapsed display ---

    def _start_elapsed_ticker(self, player: PlayerSession) -> None:
        interval = self._settings.elapsed_tick_seconds
        if interval <= 0:
            return
        self._timers.every(
            player.session_id,
            TimerKind.ELAPSED_TICK,
            interval,
            lambda s=player.session_id: self._on_elapsed_tick(s),
        )

    async def _on_elapsed_tick(self, session_id: str) -> None:
        player = self._sessions.get(session_id)
        if player is None or player.state.phase not in (Phase.VERIFICATION, Phase.PLAYING):
            return
        await self._send(player, ElapsedMessage(elapsed=round(player.state.elapsed(self._clock()), 1)))

    # --- results ---

    @staticmethod
    def _result_record(state: PlaySession, nickname: str) -> ResultRecord:
        if state.total_time is None or state.verification_time is None:
            raise InvalidPhaseError("play-through has no final times")
        return ResultRecord(
            nickname=nickname,
            total_time=state.total_time,
            verification_time=state.verification_time,
            round_times=state.round_times,
            created_at=datetime.now(UTC),
        )

    async def _finish(self, player: PlayerSession) -> None:
        self._timers.cancel_phase(player.session_id)
        state = player.state
        stats = update_personal_stats(player.stats, state.round_times)
        if stats != player.stats:
            player.stats = stats
            self._save_stats(player)

        logger.info(
            "play-through finished",
            total_time=state.total_time,
            verification_time=state.verification_time,
        )
        await self._send_phase(player)
        await self._send(
            player,
            GameFinishedMessage(
                total_time=state.total_time or 0.0,
                verification_time=state.verification_time or 0.0,
                round_times=list(state.round_times),
                best_time=stats.best_time,
                average_time=stats.average_time,
            ),
        )

        if not self._sync.configured:
            player.rank = RankInfo()
            await self._send(player, RankMessage(percentile=None, today_rank=None))
            return

        if state.nickname:
            player.save_in_flight = True
            record = self._result_record(state, state.nickname)
            self._sync.fire_and_forget(self._auto_save(player, player.play_id, record), "auto_save")
        else:
            candidate = self._result_record(state, nickname="")
            self._sync.fire_and_forget(self._publish_rank(player, player.play_id, candidate), "rank")

    def _is_current(self, player: PlayerSession, play_id: int) -> bool:
        return self._sessions.get(player.session_id) is player and player.play_id == play_id

    async def _auto_save(self, player: PlayerSession, play_id: int, record: ResultRecord) -> None:
        """Save in the background; a failed write still ranks the unsaved result."""
        try:
            saved = await self._sync.save_result(record)
        except StoreError:
            logger.warning("auto-save failed, ranking unsaved result", exc_info=True)
            await self._publish_rank(player, play_id, record)
            return
        finally:
            if player.play_id == play_id:
                player.save_in_flight = False
        await self._deliver_saved(player, play_id, saved)

    async def _store_result(self, player: PlayerSession, play_id: int, record: ResultRecord) -> None:
        await self._deliver_saved(player, play_id, await self._sync.save_result(record))

    async def _deliver_saved(self, player: PlayerSession, play_id: int, saved: ResultRecord) -> None:
        if not self._is_current(player, play_id):
            return
        player.saved_result = saved
        await self._send(player, ResultSavedMessage(result_id=saved.id))
        await self._publish_rank(player, play_id, saved)

    async def _publish_rank(self, player: PlayerSession, play_id: int, record: ResultRecord) -> None:
        rank = await self._sync.rank_of(record)
        if not self._is_current(player, play_id):
            return
        player.rank = rank
        await self._send(player, RankMessage(percentile=rank.percentile, today_rank=rank.today_rank))

    async def save_result(self, connection: ConnectionProtocol) -> None:
        """Manually persist the finished result. Failures surface to the client."""
        player = self._require_session(connection)
        if player.state.phase not in RESULT_PHASES:
            raise InvalidPhaseError(f"nothing to save in phase {player.state.phase}")
        if player.saved_result is not None:
            raise ResultAlreadySavedError("this result is already saved")
        if player.save_in_flight:
            raise SaveInProgressError("this result is being saved")
        if not player.state.nickname:
            raise NicknameRequiredError("set a nickname before saving")
        if not self._sync.configured:
            raise StoreUnconfiguredError("hosted store credentials are not configured")

        record = self._result_record(player.state, player.state.nickname)
        play_id = player.play_id
        player.save_in_flight = True
        try:
            await self._store_result(player, play_id, record)
        finally:
            if player.play_id == play_id:
                player.save_in_flight = False

    # --- nickname ---

    async def set_nickname(self, connection: ConnectionProtocol, raw: str) -> None:
        player = self._require_session(connection)
        nickname = normalize_nickname(raw)
        player.state = transitions.set_nickname(player.state, nickname)
        player.stats = player.stats.model_copy(update={"nickname": nickname})
        self._save_stats(player)
        logger.info("nickname set", nickname=nickname)
        await self._send(player, NicknameSetMessage(nickname=nickname))
        if self._sync.configured:
            self._sync.fire_and_forget(self._sync.touch_presence(nickname), "presence")

    # --- side views ---

    async def open_leaderboard(self, connection: ConnectionProtocol, period: LeaderboardPeriod) -> None:
        player = self._require_session(connection)
        player.state = transitions.open_view(player.state, Phase.LEADERBOARD)
        self._chat_feed.unsubscribe(player.session_id)
        await self._send_phase(player)

        results = await self._sync.leaderboard(period)
        entries = [
            LeaderboardEntry(
                rank=position,
                nickname=result.nickname,
                total_time=result.total_time,
                verification_time=result.verification_time,
                round_times=list(result.round_times),
                created_at=result.created_at,
            )
            for position, result in enumerate(results, start=1)
        ]
        await self._send(
            player,
            LeaderboardMessage(period=period, configured=self._sync.configured, entries=entries),
        )

    async def open_chat(self, connection: ConnectionProtocol) -> None:
        player = self._require_session(connection)
        player.state = transitions.open_view(player.state, Phase.CHAT)
        await self._send_phase(player)
        if not self._sync.configured:
            await self._send(player, ChatHistoryMessage(configured=False, messages=[]))
            return
        history = await self._chat_feed.subscribe(
            player.session_id,
            lambda records, s=player.session_id: self._deliver_chat(s, records),
        )
        await self._send(
            player,
            ChatHistoryMessage(configured=True, messages=[_chat_entry(record) for record in history]),
        )

    async def _deliver_chat(self, session_id: str, records: list[ChatRecord]) -> None:
        player = self._sessions.get(session_id)
        if player is None or player.state.phase != Phase.CHAT:
            return
        await self._send(player, ChatMessagesMessage(messages=[_chat_entry(record) for record in records]))

    async def close_view(self, connection: ConnectionProtocol) -> None:
        player = self._require_session(connection)
        player.state = transitions.close_view(player.state)
        self._chat_feed.unsubscribe(player.session_id)
        await self._send_phase(player)

    async def send_chat(self, connection: ConnectionProtocol, raw: str) -> None:
        player = self._require_session(connection)
        if player.state.phase != Phase.CHAT:
            raise InvalidPhaseError(f"chat is not open (phase={player.state.phase})")
        message = normalize_chat_message(raw)
        nickname = player.state.nickname
        if not nickname:
            raise NicknameRequiredError("set a nickname before chatting")
        record = await self._sync.post_chat(nickname, message)
        await self._chat_feed.publish(record)

    # --- restart, presence, misc ---

    async def restart(self, connection: ConnectionProtocol) -> None:
        """Begin a new play-through. Personal stats and the nickname carry over."""
        player = self._require_session(connection)
        player.state = transitions.restart(player.state, self._settings, self._rng)
        self._chat_feed.unsubscribe(player.session_id)
        player.play_id += 1
        player.saved_result = None
        player.save_in_flight = False
        player.rank = None
        logger.info("play-through restarted", play_id=player.play_id)
        await self._enter_queue(player)

    def _start_presence(self, player: PlayerSession) -> None:
        if not self._sync.configured or self._presence_interval <= 0:
            return
        if player.state.nickname:
            self._sync.fire_and_forget(self._sync.touch_presence(player.state.nickname), "presence")
        self._timers.every(
            player.session_id,
            TimerKind.PRESENCE,
            self._presence_interval,
            lambda s=player.session_id: self._on_presence(s),
        )

    async def _on_presence(self, session_id: str) -> None:
        player = self._sessions.get(session_id)
        if player is None or not player.state.nickname:
            return
        try:
            await self._sync.touch_presence(player.state.nickname)
        except StoreError:
            logger.warning("presence heartbeat failed", exc_info=True)

    async def online_count(self, connection: ConnectionProtocol) -> None:
        player = self._require_session(connection)
        await self._send(player, OnlineCountMessage(count=await self._sync.online_count()))

    async def handle_ping(self, connection: ConnectionProtocol) -> None:
        await connection.send_message(PongMessage().model_dump())


def _chat_entry(record: ChatRecord) -> ChatEntry:
    return ChatEntry(id=record.id, nickname=record.nickname, message=record.message, created_at=record.created_at)
