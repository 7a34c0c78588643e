"""
String enum definitions for the ticketing game.
"""

from enum import StrEnum


class Phase(StrEnum):
    """Stage of a single play-through."""

    WAITING_QUEUE = "waiting_queue"
    VERIFICATION = "verification"
    PLAYING = "playing"
    FINISHED = "finished"
    # side views, reachable only from FINISHED
    LEADERBOARD = "leaderboard"
    CHAT = "chat"


RESULT_PHASES = frozenset({Phase.FINISHED, Phase.LEADERBOARD, Phase.CHAT})


class GridShape(StrEnum):
    """Seat layout policy for generated grids."""

    STAIRCASE = "staircase"
    RECTANGLE = "rectangle"


class LeaderboardPeriod(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ALL = "all"


class TimerKind(StrEnum):
    """Scheduled callbacks owned by a play session."""

    QUEUE_TICK = "queue_tick"
    QUEUE_EXIT = "queue_exit"
    VERIFICATION_RETRY = "verification_retry"
    SEAT_ACTIVATION = "seat_activation"
    ROUND_SETTLE = "round_settle"
    ELAPSED_TICK = "elapsed_tick"
    PRESENCE = "presence"


class TapOutcome(StrEnum):
    """Result of a seat tap during a round."""

    IGNORED = "ignored"
    SELECTED = "selected"
    ROUND_COMPLETE = "round_complete"
