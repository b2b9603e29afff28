"""Season report: the final standings handed out when a season ends."""

from __future__ import annotations

from ptracker.gamification.ranking import participants, ranked_users
from ptracker.gamification.schemas import UserProfile
from ptracker.season.schemas import SeasonReport, SeasonState, SeasonWinner


def build_season_report(
    state: SeasonState,
    users: list[UserProfile],
    total_problems: int,
    top_n: int,
) -> SeasonReport:
    """Summarize a season from its settings and the current user aggregates."""
    players = participants(users)
    winners = [
        SeasonWinner(
            rank=idx + 1,
            user_id=u.id,
            name=u.full_name,
            points=u.total_points,
            problems=u.total_problems,
            level=u.level,
        )
        for idx, u in enumerate(ranked_users(players)[:top_n])
    ]

    return SeasonReport(
        season_name=state.current_season,
        start_date=state.season_start_date,
        end_date=state.season_end_date,
        total_participants=len(players),
        total_problems=total_problems,
        total_points=sum(u.total_points for u in players),
        winners=winners,
        is_active=state.is_active,
        is_finished=state.is_finished,
    )
