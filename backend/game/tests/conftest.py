import random

import pytest

from game.logic.game import new_session
from game.logic.settings import GameSettings
from game.messaging.router import MessageRouter
from game.session.manager import SessionManager
from game.session.sync import SyncAdapter
from game.tests.mocks import (
    MemoryChatRepository,
    MemoryLeaderboardRepository,
    MemoryPresenceRepository,
    MockConnection,
)
from shared.storage import MemoryStatsStore

# Every delay shrunk to a millisecond; the queue starts at 5000 so it drains in a few dozen ticks.
FAST_SETTINGS = GameSettings(
    queue_start_range=(5000, 5001),
    queue_tick_seconds=0.001,
    queue_exit_delay_seconds=0.001,
    seat_activation_delay_seconds=0.001,
    round_settle_delay_seconds=0.001,
    elapsed_tick_seconds=0,
)


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def fast_settings():
    return FAST_SETTINGS


@pytest.fixture
def fresh_session(rng):
    return new_session(FAST_SETTINGS, rng)


@pytest.fixture
def leaderboard_repo():
    return MemoryLeaderboardRepository()


@pytest.fixture
def chat_repo():
    return MemoryChatRepository()


@pytest.fixture
def presence_repo():
    return MemoryPresenceRepository()


@pytest.fixture
def configured_sync(leaderboard_repo, chat_repo, presence_repo):
    return SyncAdapter(leaderboard_repo, chat_repo, presence_repo)


@pytest.fixture
def stats_store():
    return MemoryStatsStore()


@pytest.fixture
async def session_manager(stats_store, rng):
    """Manager with the hosted store unconfigured."""
    manager = SessionManager(stats_store=stats_store, settings=FAST_SETTINGS, rng=rng)
    yield manager
    await manager.aclose()


@pytest.fixture
async def online_manager(configured_sync, stats_store, rng):
    """Manager backed by in-memory store repositories."""
    manager = SessionManager(configured_sync, stats_store, FAST_SETTINGS, rng=rng, presence_interval_seconds=0)
    yield manager
    await manager.aclose()


@pytest.fixture
def connection():
    return MockConnection()


@pytest.fixture
def message_router(session_manager):
    return MessageRouter(session_manager)
