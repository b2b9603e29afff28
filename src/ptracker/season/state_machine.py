"""Season state machine.

State progression: inactive <-> active -> finished
finished is terminal until an explicit reset, which starts a fresh active
season. Every transition is a pure function from one SeasonState to the
next; persisting the result is the caller's job.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from ptracker.errors import ValidationError
from ptracker.gamification.rules import new_season_id, validate_season_window
from ptracker.season.schemas import SeasonPhase, SeasonState

VALID_TRANSITIONS: dict[SeasonPhase, list[SeasonPhase]] = {
    SeasonPhase.INACTIVE: [SeasonPhase.ACTIVE, SeasonPhase.FINISHED],
    SeasonPhase.ACTIVE: [SeasonPhase.INACTIVE, SeasonPhase.FINISHED],
    SeasonPhase.FINISHED: [],
}


def validate_transition(current: SeasonPhase, target: SeasonPhase) -> None:
    """Validate a state transition. Raises ValidationError if invalid."""
    valid = VALID_TRANSITIONS.get(current, [])
    if target not in valid:
        msg = (
            f"Invalid season transition: {current.value} -> {target.value}. "
            f"Valid transitions: {[v.value for v in valid]}"
        )
        raise ValidationError(msg)


def default_season(now: datetime, length_days: int) -> SeasonState:
    """Settings created on first access."""
    return SeasonState(
        current_season=f"season-{now.year}",
        season_start_date=now,
        season_end_date=now + timedelta(days=length_days),
        is_active=True,
        is_finished=False,
    )


def configure(
    state: SeasonState,
    name: str,
    start: datetime,
    end: datetime,
    is_active: bool,
) -> SeasonState:
    """Redefine name and dates.

    Allowed while finished, but a finished season stays finished (and so
    inactive) until reset.
    """
    validate_season_window(name, start, end)
    return state.model_copy(update={
        "current_season": name.strip(),
        "season_start_date": start,
        "season_end_date": end,
        "is_active": is_active and not state.is_finished,
    })


def activate(state: SeasonState) -> SeasonState:
    if state.phase == SeasonPhase.ACTIVE:
        return state
    validate_transition(state.phase, SeasonPhase.ACTIVE)
    return state.model_copy(update={"is_active": True})


def deactivate(state: SeasonState) -> SeasonState:
    # No-op for inactive and for finished (already closed).
    if state.phase != SeasonPhase.ACTIVE:
        return state
    validate_transition(state.phase, SeasonPhase.INACTIVE)
    return state.model_copy(update={"is_active": False})


def finish(state: SeasonState, now: datetime) -> SeasonState:
    if state.phase == SeasonPhase.FINISHED:
        return state
    validate_transition(state.phase, SeasonPhase.FINISHED)
    return state.model_copy(update={
        "is_active": False,
        "is_finished": True,
        "season_end_date": now,
    })


def reset(state: SeasonState, now: datetime, default_length_days: int) -> SeasonState:
    """Start a fresh active season, keeping the previous season length."""
    length = state.season_end_date - state.season_start_date
    if length <= timedelta(0):
        length = timedelta(days=default_length_days)
    return SeasonState(
        current_season=new_season_id(now),
        season_start_date=now,
        season_end_date=now + length,
        is_active=True,
        is_finished=False,
    )
