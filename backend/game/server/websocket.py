from __future__ import annotations

import contextlib
import re
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog
from starlette.websockets import WebSocket, WebSocketDisconnect

from game.messaging.encoder import DecodeError, decode
from game.messaging.protocol import ConnectionProtocol
from game.messaging.types import ErrorMessage, SessionErrorCode
from game.server.rate_limit import TokenBucket

logger = structlog.get_logger()

if TYPE_CHECKING:
    from game.messaging.router import MessageRouter

# Opaque id the browser keeps in local storage; keys the personal stats file.
_PLAYER_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{8,64}$")

# Taps are the hottest path: two per round plus a few misses.
_RATE_LIMIT_RATE = 20.0
_RATE_LIMIT_BURST = 40

_MAX_DECODE_ERRORS = 5

_CLOSE_INVALID_PLAYER_ID = 4000
_CLOSE_UNDECODABLE = 4004


class WebSocketConnection(ConnectionProtocol):
    """ConnectionProtocol over a Starlette WebSocket; a vanished peer surfaces as ConnectionError."""

    def __init__(self, websocket: WebSocket, connection_id: str | None = None) -> None:
        self._websocket = websocket
        self._connection_id = connection_id or str(uuid4())

    @property
    def connection_id(self) -> str:
        return self._connection_id

    async def send_bytes(self, data: bytes) -> None:
        try:
            await self._websocket.send_bytes(data)
        except WebSocketDisconnect as e:
            raise ConnectionError(f"peer gone ({e.code})") from None

    async def receive_bytes(self) -> bytes:
        try:
            return await self._websocket.receive_bytes()
        except WebSocketDisconnect as e:
            raise ConnectionError(f"peer gone ({e.code})") from None

    async def close(self, code: int = 1000, reason: str = "") -> None:
        with contextlib.suppress(WebSocketDisconnect, RuntimeError):
            await self._websocket.close(code=code, reason=reason)


class _FrameGuard:
    """Decodes incoming frames, counting consecutive decode failures and applying the rate limit."""

    def __init__(self, connection: WebSocketConnection) -> None:
        self._connection = connection
        self._bucket = TokenBucket(rate=_RATE_LIMIT_RATE, burst=_RATE_LIMIT_BURST)
        self._strikes = 0

    @property
    def exhausted(self) -> bool:
        return self._strikes >= _MAX_DECODE_ERRORS

    async def admit(self, raw: bytes) -> dict[str, Any] | None:
        """Return the decoded payload, or None after reporting why the frame was dropped."""
        try:
            data = decode(raw)
        except DecodeError as e:
            self._strikes += 1
            logger.warning("undecodable frame", error=str(e), strikes=self._strikes)
            await self._reject(SessionErrorCode.INVALID_MESSAGE, str(e))
            return None
        self._strikes = 0
        if not self._bucket.consume():
            await self._reject(SessionErrorCode.RATE_LIMITED, "Too many messages")
            return None
        return data

    async def _reject(self, code: SessionErrorCode, message: str) -> None:
        await self._connection.send_message(ErrorMessage(code=code, message=message).model_dump())


async def websocket_endpoint(websocket: WebSocket, router: MessageRouter) -> None:
    player_id = websocket.query_params.get("player_id") or str(uuid4())
    if not _PLAYER_ID_PATTERN.match(player_id):
        await websocket.close(code=_CLOSE_INVALID_PLAYER_ID, reason="invalid_player_id")
        return

    await websocket.accept()
    connection = WebSocketConnection(websocket)
    guard = _FrameGuard(connection)
    structlog.contextvars.bind_contextvars(session_id=connection.connection_id, player_id=player_id)
    logger.info("player connected")

    try:
        await router.handle_connect(connection, player_id)
        while not guard.exhausted:
            data = await guard.admit(await connection.receive_bytes())
            if data is not None:
                await router.handle_message(connection, data)
        logger.info("closing after repeated undecodable frames")
        await connection.close(code=_CLOSE_UNDECODABLE, reason="too_many_decode_errors")
    except (WebSocketDisconnect, RuntimeError, ConnectionError):  # fmt: skip
        pass
    finally:
        logger.info("player disconnected")
        await router.handle_disconnect(connection)
        structlog.contextvars.clear_contextvars()
