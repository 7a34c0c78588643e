from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING

import structlog
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute

from game.logic.enums import LeaderboardPeriod
from game.messaging.router import MessageRouter
from game.server.settings import PodoalServerSettings
from game.server.websocket import websocket_endpoint
from game.session.chat_feed import ChatFeed
from game.session.manager import SessionManager
from game.session.sync import build_sync_adapter
from shared.build_info import APP_VERSION, GIT_COMMIT
from shared.dal.errors import StoreError
from shared.logging import setup_logging
from shared.storage import JsonStatsStore

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.requests import Request
    from starlette.websockets import WebSocket

    from game.session.sync import SyncAdapter


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "version": APP_VERSION, "commit": GIT_COMMIT})


async def status(request: Request) -> JSONResponse:
    session_manager: SessionManager = request.app.state.session_manager
    settings: PodoalServerSettings = request.app.state.settings
    return JSONResponse(
        {
            "status": "ok",
            "version": APP_VERSION,
            "commit": GIT_COMMIT,
            "sessions": session_manager.session_count,
            "phases": session_manager.phase_counts(),
            "max_sessions": settings.max_sessions,
            "store_configured": session_manager.sync.configured,
        },
    )


async def leaderboard(request: Request) -> JSONResponse:
    sync: SyncAdapter = request.app.state.session_manager.sync
    try:
        period = LeaderboardPeriod(request.query_params.get("period", LeaderboardPeriod.DAILY))
    except ValueError:
        return JSONResponse({"error": "Invalid period"}, status_code=400)

    if not sync.configured:
        return JSONResponse({"period": period, "configured": False, "entries": []})
    try:
        results = await sync.leaderboard(period)
    except StoreError:
        logger.warning("leaderboard fetch failed", period=period, exc_info=True)
        return JSONResponse({"error": "Store unavailable"}, status_code=503)

    entries = [
        {"rank": position, **result.model_dump(mode="json", exclude={"id"})}
        for position, result in enumerate(results, start=1)
    ]
    return JSONResponse({"period": period, "configured": True, "entries": entries})


async def online(request: Request) -> JSONResponse:
    sync: SyncAdapter = request.app.state.session_manager.sync
    try:
        count = await sync.online_count()
    except StoreError:
        logger.warning("online count failed", exc_info=True)
        return JSONResponse({"error": "Store unavailable"}, status_code=503)
    return JSONResponse({"configured": sync.configured, "count": count})


def _build_session_manager(settings: PodoalServerSettings) -> SessionManager:
    sync = build_sync_adapter(
        settings.store_url,
        settings.store_api_key,
        timeout=settings.store_timeout_seconds,
        timezone=settings.leaderboard_timezone,
        page_size=settings.leaderboard_page_size,
        online_window_seconds=settings.online_window_seconds,
    )
    return SessionManager(
        sync,
        JsonStatsStore(settings.stats_path),
        settings.game_settings(),
        chat_feed=ChatFeed(sync, poll_seconds=settings.chat_poll_seconds),
        presence_interval_seconds=settings.presence_interval_seconds,
        max_sessions=settings.max_sessions,
    )


def create_app(
    settings: PodoalServerSettings | None = None,
    session_manager: SessionManager | None = None,
    message_router: MessageRouter | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = PodoalServerSettings()

    if session_manager is None:
        session_manager = _build_session_manager(settings)

    if message_router is None:
        message_router = MessageRouter(session_manager)

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, message_router)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/status", status, methods=["GET"]),
        Route("/leaderboard", leaderboard, methods=["GET"]),
        Route("/online", online, methods=["GET"]),
        WebSocketRoute("/ws", ws_endpoint),
    ]

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        yield
        await session_manager.aclose()

    app = Starlette(routes=routes, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.session_manager = session_manager

    logger.info("game server ready", store_configured=session_manager.sync.configured)
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (uvicorn --factory game.server.app:get_app)."""
    settings = PodoalServerSettings()
    setup_logging(settings.log_dir)
    return create_app(settings=settings)
