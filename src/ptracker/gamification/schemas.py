"""Domain records shared by both storage backends and the API."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class Level(str, Enum):
    NOVICE = "novice"
    FIGHTER = "fighter"
    MASTER = "master"


class ProblemCategory(str, Enum):
    MAINTENANCE = "maintenance"
    TESTING = "testing"
    AUDIT = "audit"
    PNR = "pnr"
    SAFETY = "safety"
    QUALITY = "quality"
    EQUIPMENT = "equipment"
    PROCESS = "process"
    OTHER = "other"


class ProblemStatus(str, Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    RESOLVED = "resolved"


class LedgerSource(str, Enum):
    """Why a ledger entry exists."""

    SUBMISSION = "submission"
    ADMIN_BONUS = "admin_bonus"
    ADMIN_AWARD = "admin_award"


# --- Records ---


class UserProfile(BaseModel):
    id: str
    email: str
    full_name: str
    total_points: int = 0
    total_problems: int = 0
    level: Level = Level.NOVICE
    is_admin: bool = False
    joined_at: datetime
    last_active: datetime


class ProblemRecord(BaseModel):
    id: str
    title: str
    description: str
    category: ProblemCategory
    images: list[str] = Field(default_factory=list)
    author_id: str
    author_name: str
    points: int = 1
    status: ProblemStatus = ProblemStatus.PENDING
    reviewed: bool = False
    reviewed_at: datetime | None = None
    reviewed_by: str | None = None
    admin_notes: str | None = None
    created_at: datetime
    season_id: str


class LedgerEntry(BaseModel):
    """One immutable point-granting event."""

    id: str
    user_id: str
    problem_id: str | None = None
    points: int
    reason: str
    source: LedgerSource
    admin_id: str | None = None
    created_at: datetime
    season_id: str


class LeaderboardEntry(BaseModel):
    position: int
    user_id: str
    full_name: str
    total_points: int
    total_problems: int
    level: Level


# --- API ---


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardEntry]
    total: int


class LevelEntry(BaseModel):
    level: Level
    title: str
    emoji: str
    min_points: int


class AllLevelsResponse(BaseModel):
    levels: list[LevelEntry]


class CategoriesResponse(BaseModel):
    categories: list[ProblemCategory]
