"""Hosted table store: HTTP client and repository implementations."""

from shared.store.chat import RestChatRepository
from shared.store.client import StoreClient
from shared.store.presence import RestPresenceRepository
from shared.store.rankings import RestLeaderboardRepository

__all__ = [
    "RestChatRepository",
    "RestLeaderboardRepository",
    "RestPresenceRepository",
    "StoreClient",
]
