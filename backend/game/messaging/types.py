from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from game.logic.enums import LeaderboardPeriod, Phase
from shared.validators import has_control_characters

# Wire-level size caps only; nickname and chat length rules live in game.logic.validation
# so their violations surface as invalid_nickname / invalid_chat_message.
_MAX_TEXT_FIELD = 1000
_MAX_CODE_FIELD = 32
_MAX_SEAT_ID_FIELD = 64


class ClientMessageType(StrEnum):
    VERIFY_CODE = "verify_code"
    REFRESH_CODE = "refresh_code"
    TAP_SEAT = "tap_seat"
    SET_NICKNAME = "set_nickname"
    SAVE_RESULT = "save_result"
    OPEN_LEADERBOARD = "open_leaderboard"
    OPEN_CHAT = "open_chat"
    CLOSE_VIEW = "close_view"
    SEND_CHAT = "send_chat"
    RESTART = "restart"
    ONLINE_COUNT = "online_count"
    PING = "ping"


class SessionMessageType(StrEnum):
    SESSION_STARTED = "session_started"
    PHASE_CHANGED = "phase_changed"
    QUEUE = "queue"
    VERIFICATION_CODE = "verification_code"
    VERIFICATION_RESULT = "verification_result"
    ROUND_STARTED = "round_started"
    SEATS_OPENED = "seats_opened"
    SEAT_SELECTED = "seat_selected"
    ROUND_COMPLETE = "round_complete"
    ELAPSED = "elapsed"
    GAME_FINISHED = "game_finished"
    RANK = "rank"
    RESULT_SAVED = "result_saved"
    NICKNAME_SET = "nickname_set"
    LEADERBOARD = "leaderboard"
    CHAT_HISTORY = "chat_history"
    CHAT_MESSAGES = "chat_messages"
    ONLINE_COUNT = "online_count"
    ERROR = "session_error"
    PONG = "pong"


class SessionErrorCode(StrEnum):
    INVALID_MESSAGE = "invalid_message"
    RATE_LIMITED = "rate_limited"
    SERVER_FULL = "server_full"
    NO_SESSION = "no_session"
    INVALID_PHASE = "invalid_phase"
    VERIFICATION_PENDING = "verification_pending"
    INVALID_NICKNAME = "invalid_nickname"
    INVALID_CHAT_MESSAGE = "invalid_chat_message"
    NICKNAME_REQUIRED = "nickname_required"
    ALREADY_SAVED = "already_saved"
    SAVE_IN_PROGRESS = "save_in_progress"
    STORE_NOT_CONFIGURED = "store_not_configured"
    STORE_UNAVAILABLE = "store_unavailable"
    ACTION_FAILED = "action_failed"


# --- client -> server ---


class VerifyCodeMessage(BaseModel):
    type: Literal[ClientMessageType.VERIFY_CODE] = ClientMessageType.VERIFY_CODE
    code: str = Field(max_length=_MAX_CODE_FIELD)


class RefreshCodeMessage(BaseModel):
    type: Literal[ClientMessageType.REFRESH_CODE] = ClientMessageType.REFRESH_CODE


class TapSeatMessage(BaseModel):
    type: Literal[ClientMessageType.TAP_SEAT] = ClientMessageType.TAP_SEAT
    seat_id: str = Field(min_length=1, max_length=_MAX_SEAT_ID_FIELD)


class SetNicknameMessage(BaseModel):
    type: Literal[ClientMessageType.SET_NICKNAME] = ClientMessageType.SET_NICKNAME
    nickname: str = Field(max_length=_MAX_TEXT_FIELD)


class SaveResultMessage(BaseModel):
    type: Literal[ClientMessageType.SAVE_RESULT] = ClientMessageType.SAVE_RESULT


class OpenLeaderboardMessage(BaseModel):
    type: Literal[ClientMessageType.OPEN_LEADERBOARD] = ClientMessageType.OPEN_LEADERBOARD
    period: LeaderboardPeriod = LeaderboardPeriod.DAILY


class OpenChatMessage(BaseModel):
    type: Literal[ClientMessageType.OPEN_CHAT] = ClientMessageType.OPEN_CHAT


class CloseViewMessage(BaseModel):
    type: Literal[ClientMessageType.CLOSE_VIEW] = ClientMessageType.CLOSE_VIEW


class SendChatMessage(BaseModel):
    type: Literal[ClientMessageType.SEND_CHAT] = ClientMessageType.SEND_CHAT
    message: str = Field(max_length=_MAX_TEXT_FIELD)

    @field_validator("message")
    @classmethod
    def _validate_message(cls, v: str) -> str:
        if has_control_characters(v):
            raise ValueError("message must not contain control characters")
        return v


class RestartMessage(BaseModel):
    type: Literal[ClientMessageType.RESTART] = ClientMessageType.RESTART


class OnlineCountRequestMessage(BaseModel):
    type: Literal[ClientMessageType.ONLINE_COUNT] = ClientMessageType.ONLINE_COUNT


class PingMessage(BaseModel):
    type: Literal[ClientMessageType.PING] = ClientMessageType.PING


ClientMessage = Annotated[
    VerifyCodeMessage
    | RefreshCodeMessage
    | TapSeatMessage
    | SetNicknameMessage
    | SaveResultMessage
    | OpenLeaderboardMessage
    | OpenChatMessage
    | CloseViewMessage
    | SendChatMessage
    | RestartMessage
    | OnlineCountRequestMessage
    | PingMessage,
    Field(discriminator="type"),
]

_client_message_adapter = TypeAdapter(ClientMessage)


def parse_client_message(data: dict[str, Any]) -> ClientMessage:
    """Parse a raw dict into a typed ClientMessage."""
    return _client_message_adapter.validate_python(data)


# --- server -> client ---


class SessionStartedMessage(BaseModel):
    type: Literal[SessionMessageType.SESSION_STARTED] = SessionMessageType.SESSION_STARTED
    nickname: str | None
    best_time: float | None
    average_time: float | None
    store_configured: bool


class PhaseChangedMessage(BaseModel):
    type: Literal[SessionMessageType.PHASE_CHANGED] = SessionMessageType.PHASE_CHANGED
    phase: Phase


class QueueMessage(BaseModel):
    type: Literal[SessionMessageType.QUEUE] = SessionMessageType.QUEUE
    position: int


class VerificationCodeMessage(BaseModel):
    type: Literal[SessionMessageType.VERIFICATION_CODE] = SessionMessageType.VERIFICATION_CODE
    code: str


class VerificationResultMessage(BaseModel):
    type: Literal[SessionMessageType.VERIFICATION_RESULT] = SessionMessageType.VERIFICATION_RESULT
    passed: bool
    verification_time: float | None = None


class RoundStartedMessage(BaseModel):
    type: Literal[SessionMessageType.ROUND_STARTED] = SessionMessageType.ROUND_STARTED
    round_index: int
    total_rounds: int
    grid: list[list[dict[str, Any] | None]]


class SeatsOpenedMessage(BaseModel):
    type: Literal[SessionMessageType.SEATS_OPENED] = SessionMessageType.SEATS_OPENED
    round_index: int
    seat_ids: list[str]


class SeatSelectedMessage(BaseModel):
    type: Literal[SessionMessageType.SEAT_SELECTED] = SessionMessageType.SEAT_SELECTED
    round_index: int
    seat_id: str
    selected_count: int


class RoundCompleteMessage(BaseModel):
    type: Literal[SessionMessageType.ROUND_COMPLETE] = SessionMessageType.ROUND_COMPLETE
    round_index: int
    reaction_time: float


class ElapsedMessage(BaseModel):
    type: Literal[SessionMessageType.ELAPSED] = SessionMessageType.ELAPSED
    elapsed: float


class GameFinishedMessage(BaseModel):
    type: Literal[SessionMessageType.GAME_FINISHED] = SessionMessageType.GAME_FINISHED
    total_time: float
    verification_time: float
    round_times: list[float]
    best_time: float | None
    average_time: float | None


class RankMessage(BaseModel):
    """None values mean the player is the first challenger or the store is off."""

    type: Literal[SessionMessageType.RANK] = SessionMessageType.RANK
    percentile: float | None
    today_rank: int | None


class ResultSavedMessage(BaseModel):
    type: Literal[SessionMessageType.RESULT_SAVED] = SessionMessageType.RESULT_SAVED
    result_id: str | None


class NicknameSetMessage(BaseModel):
    type: Literal[SessionMessageType.NICKNAME_SET] = SessionMessageType.NICKNAME_SET
    nickname: str


class LeaderboardEntry(BaseModel):
    rank: int
    nickname: str
    total_time: float
    verification_time: float
    round_times: list[float]
    created_at: datetime


class LeaderboardMessage(BaseModel):
    type: Literal[SessionMessageType.LEADERBOARD] = SessionMessageType.LEADERBOARD
    period: LeaderboardPeriod
    configured: bool
    entries: list[LeaderboardEntry]


class ChatEntry(BaseModel):
    id: str
    nickname: str
    message: str
    created_at: datetime


class ChatHistoryMessage(BaseModel):
    type: Literal[SessionMessageType.CHAT_HISTORY] = SessionMessageType.CHAT_HISTORY
    configured: bool
    messages: list[ChatEntry]


class ChatMessagesMessage(BaseModel):
    """Newly arrived chat messages for an open chat view."""

    type: Literal[SessionMessageType.CHAT_MESSAGES] = SessionMessageType.CHAT_MESSAGES
    messages: list[ChatEntry]


class OnlineCountMessage(BaseModel):
    type: Literal[SessionMessageType.ONLINE_COUNT] = SessionMessageType.ONLINE_COUNT
    count: int | None


class ErrorMessage(BaseModel):
    type: Literal[SessionMessageType.ERROR] = SessionMessageType.ERROR
    code: SessionErrorCode
    message: str


class PongMessage(BaseModel):
    type: Literal[SessionMessageType.PONG] = SessionMessageType.PONG
