"""Deterministic leaderboard ranking.

Users ranked by total_points DESC, then by earliest joined_at ASC.
The administrator never appears; users without points are not ranked.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

from ptracker.clock import ensure_utc
from ptracker.gamification.schemas import LeaderboardEntry, UserProfile

_FAR_FUTURE = datetime(2099, 12, 31, 23, 59, 59, tzinfo=timezone.utc)


def participants(users: Iterable[UserProfile]) -> list[UserProfile]:
    """Everyone who competes: all non-admin users."""
    return [u for u in users if not u.is_admin]


def sort_key(user: UserProfile) -> tuple[int, datetime, str]:
    joined = ensure_utc(user.joined_at) if user.joined_at else _FAR_FUTURE
    return (-user.total_points, joined, user.id)


def ranked_users(users: Iterable[UserProfile]) -> list[UserProfile]:
    """Non-admin users with points, best first."""
    return sorted(
        (u for u in participants(users) if u.total_points > 0),
        key=sort_key,
    )


def rank_leaderboard(users: Iterable[UserProfile]) -> list[LeaderboardEntry]:
    """Build leaderboard entries with 1-indexed positions."""
    return [
        LeaderboardEntry(
            position=idx + 1,
            user_id=u.id,
            full_name=u.full_name,
            total_points=u.total_points,
            total_problems=u.total_problems,
            level=u.level,
        )
        for idx, u in enumerate(ranked_users(users))
    ]
