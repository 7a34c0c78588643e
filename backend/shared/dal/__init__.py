"""Data access layer: repository interfaces and shared persistence models."""

from shared.dal.chat_repository import ChatRepository
from shared.dal.errors import StoreError, StoreUnconfiguredError
from shared.dal.leaderboard_repository import LeaderboardRepository
from shared.dal.models import ChatRecord, PersonalStats, ResultRecord
from shared.dal.presence_repository import PresenceRepository

__all__ = [
    "ChatRecord",
    "ChatRepository",
    "LeaderboardRepository",
    "PersonalStats",
    "PresenceRepository",
    "ResultRecord",
    "StoreError",
    "StoreUnconfiguredError",
]
