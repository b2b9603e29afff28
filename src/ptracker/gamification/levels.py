"""Level tiers and computation.

These values MUST match the frontend tier table exactly:
  novice  0-4 points
  fighter 5-9 points
  master  10+ points
"""

from __future__ import annotations

from ptracker.gamification.schemas import Level

LEVELS: list[dict] = [
    {"level": Level.NOVICE, "title": "Новичок", "emoji": "🏁", "min_points": 0},
    {"level": Level.FIGHTER, "title": "Боец", "emoji": "🛠️", "min_points": 5},
    {"level": Level.MASTER, "title": "Мастер", "emoji": "🧠", "min_points": 10},
]


def compute_level(points: int) -> Level:
    """Map accumulated points to a level tier."""
    if points >= 10:
        return Level.MASTER
    if points >= 5:
        return Level.FIGHTER
    return Level.NOVICE


def level_progress(points: int) -> dict:
    """Level info plus the distance to the next tier.

    At master, ``next_level`` is master again and ``points_to_next`` is 0.
    """
    level = compute_level(points)
    index = next(i for i, tier in enumerate(LEVELS) if tier["level"] == level)
    current = LEVELS[index]
    upcoming = LEVELS[min(index + 1, len(LEVELS) - 1)]

    return {
        "level": level,
        "title": current["title"],
        "emoji": current["emoji"],
        "next_level": upcoming["level"],
        "points_to_next": max(0, upcoming["min_points"] - points),
    }
