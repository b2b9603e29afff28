"""Season records and request/response models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel

from ptracker.gamification.schemas import Level


class SeasonPhase(str, Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"
    FINISHED = "finished"


class SeasonState(BaseModel):
    """The singleton season settings record."""

    current_season: str
    season_start_date: datetime
    season_end_date: datetime
    is_active: bool = True
    is_finished: bool = False

    @property
    def phase(self) -> SeasonPhase:
        if self.is_finished:
            return SeasonPhase.FINISHED
        if self.is_active:
            return SeasonPhase.ACTIVE
        return SeasonPhase.INACTIVE

    @property
    def accepts_submissions(self) -> bool:
        return self.is_active and not self.is_finished


class SeasonWinner(BaseModel):
    rank: int
    user_id: str
    name: str
    points: int
    problems: int
    level: Level


class SeasonReport(BaseModel):
    season_name: str
    start_date: datetime
    end_date: datetime
    total_participants: int
    total_problems: int
    total_points: int
    winners: list[SeasonWinner]
    is_active: bool
    is_finished: bool


# --- API ---


class SeasonResponse(BaseModel):
    current_season: str
    season_start_date: datetime
    season_end_date: datetime
    is_active: bool
    is_finished: bool
    phase: SeasonPhase


class ConfigureSeasonRequest(BaseModel):
    name: str
    start_date: datetime
    end_date: datetime
    is_active: bool = True
