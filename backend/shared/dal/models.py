"""Persistence models for the data access layer."""

from datetime import datetime

from pydantic import BaseModel, Field


class ResultRecord(BaseModel, frozen=True):
    """Outcome of one completed play-through. Append-only once stored."""

    id: str | None = None  # assigned by the store on insert
    nickname: str
    total_time: float = Field(ge=0)
    verification_time: float = Field(ge=0)
    round_times: tuple[float, ...]
    created_at: datetime


class ChatRecord(BaseModel, frozen=True):
    """A chat message as stored; id is the dedupe key for realtime delivery."""

    id: str
    nickname: str
    message: str
    created_at: datetime


class PersonalStats(BaseModel, frozen=True):
    """Rolling personal bests kept per player across play-throughs."""

    best_time: float | None = None  # fastest single round
    average_time: float | None = None  # lowest per-session mean round time
    nickname: str | None = None
