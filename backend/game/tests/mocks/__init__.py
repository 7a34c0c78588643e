from game.tests.mocks.connection import MockConnection
from game.tests.mocks.repositories import (
    MemoryChatRepository,
    MemoryLeaderboardRepository,
    MemoryPresenceRepository,
)

__all__ = [
    "MemoryChatRepository",
    "MemoryLeaderboardRepository",
    "MemoryPresenceRepository",
    "MockConnection",
]
