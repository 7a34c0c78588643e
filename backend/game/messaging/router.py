from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from game.logic.exceptions import (
    GameRuleError,
    InvalidChatMessageError,
    InvalidNicknameError,
    InvalidPhaseError,
    NicknameRequiredError,
    NoSessionError,
    ResultAlreadySavedError,
    SaveInProgressError,
    VerificationPendingError,
)
from game.messaging.types import (
    CloseViewMessage,
    ErrorMessage,
    OnlineCountRequestMessage,
    OpenChatMessage,
    OpenLeaderboardMessage,
    PingMessage,
    RefreshCodeMessage,
    RestartMessage,
    SaveResultMessage,
    SendChatMessage,
    SessionErrorCode,
    SetNicknameMessage,
    TapSeatMessage,
    VerifyCodeMessage,
    parse_client_message,
)
from shared.dal.errors import StoreError, StoreUnconfiguredError

if TYPE_CHECKING:
    from game.messaging.protocol import ConnectionProtocol
    from game.messaging.types import ClientMessage
    from game.session.manager import SessionManager

logger = structlog.get_logger()

_RULE_ERROR_CODES: dict[type[GameRuleError], SessionErrorCode] = {
    NoSessionError: SessionErrorCode.NO_SESSION,
    InvalidPhaseError: SessionErrorCode.INVALID_PHASE,
    VerificationPendingError: SessionErrorCode.VERIFICATION_PENDING,
    InvalidNicknameError: SessionErrorCode.INVALID_NICKNAME,
    InvalidChatMessageError: SessionErrorCode.INVALID_CHAT_MESSAGE,
    NicknameRequiredError: SessionErrorCode.NICKNAME_REQUIRED,
    ResultAlreadySavedError: SessionErrorCode.ALREADY_SAVED,
    SaveInProgressError: SessionErrorCode.SAVE_IN_PROGRESS,
}


def error_code_for(error: Exception) -> SessionErrorCode:
    """Map a handled exception to the error code sent to the client."""
    if isinstance(error, StoreUnconfiguredError):
        return SessionErrorCode.STORE_NOT_CONFIGURED
    if isinstance(error, StoreError):
        return SessionErrorCode.STORE_UNAVAILABLE
    for error_type, code in _RULE_ERROR_CODES.items():
        if isinstance(error, error_type):
            return code
    return SessionErrorCode.ACTION_FAILED


class MessageRouter:
    """
    Routes incoming messages to SessionManager operations.

    Rule violations and store failures become session_error replies; none of
    them end the session. Tests drive this class with in-memory connections.
    """

    def __init__(self, session_manager: SessionManager) -> None:
        self._session_manager = session_manager

    async def handle_connect(self, connection: ConnectionProtocol, player_id: str) -> None:
        await self._session_manager.start_session(connection, player_id)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        await self._session_manager.end_session(connection)

    async def handle_message(
        self,
        connection: ConnectionProtocol,
        raw_message: dict[str, Any],
    ) -> None:
        try:
            message = parse_client_message(raw_message)
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            logger.warning("invalid message", connection_id=connection.connection_id, error=str(e))
            await connection.send_message(
                ErrorMessage(code=SessionErrorCode.INVALID_MESSAGE, message=str(e)).model_dump(),
            )
            return

        try:
            await self._dispatch(connection, message)
        except (GameRuleError, StoreError) as e:
            code = error_code_for(e)
            logger.warning("action failed", action=message.type, error_code=code, error=str(e))
            await connection.send_message(ErrorMessage(code=code, message=str(e)).model_dump())

    async def _dispatch(self, connection: ConnectionProtocol, message: ClientMessage) -> None:  # noqa: C901, PLR0912
        manager = self._session_manager
        if isinstance(message, TapSeatMessage):
            await manager.tap_seat(connection, message.seat_id)
        elif isinstance(message, VerifyCodeMessage):
            await manager.submit_verification(connection, message.code)
        elif isinstance(message, RefreshCodeMessage):
            await manager.refresh_code(connection)
        elif isinstance(message, SetNicknameMessage):
            await manager.set_nickname(connection, message.nickname)
        elif isinstance(message, SaveResultMessage):
            await manager.save_result(connection)
        elif isinstance(message, OpenLeaderboardMessage):
            await manager.open_leaderboard(connection, message.period)
        elif isinstance(message, OpenChatMessage):
            await manager.open_chat(connection)
        elif isinstance(message, CloseViewMessage):
            await manager.close_view(connection)
        elif isinstance(message, SendChatMessage):
            await manager.send_chat(connection, message.message)
        elif isinstance(message, RestartMessage):
            await manager.restart(connection)
        elif isinstance(message, OnlineCountRequestMessage):
            await manager.online_count(connection)
        elif isinstance(message, PingMessage):
            await manager.handle_ping(connection)
