"""Users API request/response models."""

from __future__ import annotations

from pydantic import BaseModel

from ptracker.gamification.schemas import Level, LedgerEntry, UserProfile


class LevelProgress(BaseModel):
    level: Level
    title: str
    emoji: str
    next_level: Level
    points_to_next: int


class MeResponse(BaseModel):
    user: UserProfile
    progress: LevelProgress


class UserListResponse(BaseModel):
    users: list[UserProfile]
    total: int


class GrantPointsRequest(BaseModel):
    amount: int
    reason: str
    problem_id: str | None = None


class PointsHistoryResponse(BaseModel):
    entries: list[LedgerEntry]
    total_points: int
