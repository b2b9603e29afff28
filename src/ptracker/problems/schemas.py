"""Problems API request/response models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from ptracker.gamification.schemas import ProblemRecord


class ProblemCreateRequest(BaseModel):
    title: str
    description: str
    category: str
    images: list[str] = Field(default_factory=list)


class ProblemListResponse(BaseModel):
    problems: list[ProblemRecord]
    total: int


class BonusRequest(BaseModel):
    bonus_points: int
    reason: str | None = None


class StatusUpdateRequest(BaseModel):
    status: str
    admin_notes: str | None = None
