"""Leaderboard, level tiers and problem categories."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ptracker.dependencies import get_data_service
from ptracker.gamification.levels import LEVELS
from ptracker.gamification.schemas import (
    AllLevelsResponse,
    CategoriesResponse,
    LeaderboardResponse,
    LevelEntry,
    ProblemCategory,
)
from ptracker.service.data_service import DataService

router = APIRouter(prefix="/api/v1", tags=["Gamification"])


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(service: DataService = Depends(get_data_service)):
    """Ranked non-admin users with points."""
    entries = await service.get_leaderboard()
    return LeaderboardResponse(entries=entries, total=len(entries))


@router.get("/levels", response_model=AllLevelsResponse)
async def get_levels():
    return AllLevelsResponse(levels=[LevelEntry(**tier) for tier in LEVELS])


@router.get("/categories", response_model=CategoriesResponse)
async def get_categories():
    return CategoriesResponse(categories=list(ProblemCategory))
