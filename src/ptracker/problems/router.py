"""Problem submission and moderation endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ptracker.auth.dependencies import get_identity, get_registered_identity
from ptracker.auth.gate import Identity
from ptracker.dependencies import get_data_service
from ptracker.gamification.schemas import ProblemRecord
from ptracker.problems.schemas import (
    BonusRequest,
    ProblemCreateRequest,
    ProblemListResponse,
    StatusUpdateRequest,
)
from ptracker.service.data_service import DataService

router = APIRouter(prefix="/api/v1/problems", tags=["Problems"])


@router.get("", response_model=ProblemListResponse)
async def list_problems(
    author_id: str | None = Query(default=None),
    _identity: Identity = Depends(get_identity),
    service: DataService = Depends(get_data_service),
):
    """All problems newest first, optionally filtered by author."""
    if author_id:
        problems = await service.list_user_problems(author_id)
    else:
        problems = await service.list_problems()
    return ProblemListResponse(problems=problems, total=len(problems))


@router.post("", response_model=ProblemRecord, status_code=201)
async def submit_problem(
    body: ProblemCreateRequest,
    identity: Identity = Depends(get_registered_identity),
    service: DataService = Depends(get_data_service),
):
    return await service.submit_problem(
        identity,
        title=body.title,
        description=body.description,
        category=body.category,
        images=body.images,
    )


@router.get("/{problem_id}", response_model=ProblemRecord)
async def get_problem(
    problem_id: str,
    _identity: Identity = Depends(get_identity),
    service: DataService = Depends(get_data_service),
):
    return await service.get_problem(problem_id)


# ── Admin moderation ──


@router.post("/{problem_id}/bonus", response_model=ProblemRecord)
async def add_bonus(
    problem_id: str,
    body: BonusRequest,
    identity: Identity = Depends(get_identity),
    service: DataService = Depends(get_data_service),
):
    """Grant 1-10 bonus points to the problem's author."""
    return await service.add_bonus_points(identity, problem_id, body.bonus_points, body.reason)


@router.post("/{problem_id}/review-toggle", response_model=ProblemRecord)
async def toggle_review(
    problem_id: str,
    identity: Identity = Depends(get_identity),
    service: DataService = Depends(get_data_service),
):
    return await service.toggle_reviewed(identity, problem_id)


@router.put("/{problem_id}/review", response_model=ProblemRecord)
async def mark_reviewed(
    problem_id: str,
    identity: Identity = Depends(get_identity),
    service: DataService = Depends(get_data_service),
):
    return await service.mark_reviewed(identity, problem_id)


@router.delete("/{problem_id}/review", response_model=ProblemRecord)
async def unmark_reviewed(
    problem_id: str,
    identity: Identity = Depends(get_identity),
    service: DataService = Depends(get_data_service),
):
    return await service.unmark_reviewed(identity, problem_id)


@router.patch("/{problem_id}/status", response_model=ProblemRecord)
async def update_status(
    problem_id: str,
    body: StatusUpdateRequest,
    identity: Identity = Depends(get_identity),
    service: DataService = Depends(get_data_service),
):
    return await service.update_problem_status(identity, problem_id, body.status, body.admin_notes)
