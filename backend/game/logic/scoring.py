"""
Timing, personal statistics and leaderboard ranking.

All durations are recomputed from clock timestamps; display tickers never feed
into scores. Lower is better everywhere: a lower time is a better result and a
lower percentile is a better standing.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from statistics import fmean
from typing import TYPE_CHECKING

from game.logic.enums import LeaderboardPeriod
from shared.dal.models import PersonalStats

if TYPE_CHECKING:
    from collections.abc import Sequence
    from zoneinfo import ZoneInfo

PERCENT = 100.0


def reaction_time(activated_at: float, tapped_at: float) -> float:
    """Seconds between seat activation and the second qualifying tap."""
    return max(0.0, tapped_at - activated_at)


def total_time(started_at: float, ended_at: float) -> float:
    """Seconds from the start of verification to the end of the last round."""
    return max(0.0, ended_at - started_at)


def update_personal_stats(stats: PersonalStats, round_times: Sequence[float]) -> PersonalStats:
    """
    Fold a finished play-through into the rolling personal bests.

    Best is the fastest round, average the mean round time. Each is replaced
    only when strictly lower than the stored value; with no rounds both are
    left as they are.
    """
    if not round_times:
        return stats
    best = min(round_times)
    average = fmean(round_times)
    update: dict[str, float] = {}
    if stats.best_time is None or best < stats.best_time:
        update["best_time"] = best
    if stats.average_time is None or average < stats.average_time:
        update["average_time"] = average
    return stats.model_copy(update=update) if update else stats


def rank_position(total: float, peer_totals: Sequence[float]) -> int:
    """1-based position of ``total`` among its peers. Ties rank ahead of the peer."""
    return 1 + sum(1 for peer in peer_totals if peer < total)


def rank_percentile(total: float, peer_totals: Sequence[float]) -> float | None:
    """
    Percentile of ``total`` in the combined pool of itself and its peers.

    rank / (peers + 1) * 100, so the fastest of N+1 gets 100/(N+1) and the
    slowest gets 100. Returns None without peers: a first challenger has no
    standing yet.
    """
    if not peer_totals:
        return None
    return rank_position(total, peer_totals) / (len(peer_totals) + 1) * PERCENT


def window_start(period: LeaderboardPeriod, now: datetime, tz: ZoneInfo) -> datetime | None:
    """
    Lower bound of a leaderboard window in the reference timezone.

    Daily starts at local midnight, weekly at Monday midnight (ISO week),
    monthly at the first of the month. ALL has no bound.
    """
    if period == LeaderboardPeriod.ALL:
        return None
    local = now.astimezone(tz)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == LeaderboardPeriod.DAILY:
        return midnight
    if period == LeaderboardPeriod.WEEKLY:
        return midnight - timedelta(days=local.weekday())
    return midnight.replace(day=1)
