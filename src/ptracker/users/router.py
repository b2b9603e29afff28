"""Users and points ledger API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from ptracker.auth.dependencies import get_identity, get_registered_identity
from ptracker.auth.gate import Identity, require_admin
from ptracker.dependencies import get_data_service
from ptracker.gamification.levels import level_progress
from ptracker.gamification.schemas import LedgerEntry, UserProfile
from ptracker.service.data_service import DataService
from ptracker.users.schemas import (
    GrantPointsRequest,
    LevelProgress,
    MeResponse,
    PointsHistoryResponse,
    UserListResponse,
)

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


def _me(user: UserProfile) -> MeResponse:
    return MeResponse(user=user, progress=LevelProgress(**level_progress(user.total_points)))


@router.post("/me", response_model=MeResponse)
async def register_me(
    identity: Identity = Depends(get_identity),
    service: DataService = Depends(get_data_service),
):
    """Create or refresh the caller's profile."""
    return _me(await service.upsert_user(identity))


@router.get("/me", response_model=MeResponse)
async def get_me(
    identity: Identity = Depends(get_registered_identity),
    service: DataService = Depends(get_data_service),
):
    return _me(await service.get_user(identity.user_id))


@router.get("", response_model=UserListResponse)
async def list_users(
    identity: Identity = Depends(get_identity),
    service: DataService = Depends(get_data_service),
):
    """All users. Admin only."""
    require_admin(identity, "list users")
    users = await service.list_users()
    return UserListResponse(users=users, total=len(users))


@router.get("/{user_id}", response_model=UserProfile)
async def get_user(
    user_id: str,
    _identity: Identity = Depends(get_identity),
    service: DataService = Depends(get_data_service),
):
    return await service.get_user(user_id)


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: str,
    identity: Identity = Depends(get_identity),
    service: DataService = Depends(get_data_service),
) -> Response:
    await service.delete_user(identity, user_id)
    return Response(status_code=204)


@router.post("/{user_id}/recompute", response_model=UserProfile)
async def recompute_user(
    user_id: str,
    identity: Identity = Depends(get_identity),
    service: DataService = Depends(get_data_service),
):
    """Rebuild the user's totals from the ledger. Admin only."""
    return await service.recompute_user(identity, user_id)


@router.post("/{user_id}/points", response_model=LedgerEntry, status_code=201)
async def grant_points(
    user_id: str,
    body: GrantPointsRequest,
    identity: Identity = Depends(get_identity),
    service: DataService = Depends(get_data_service),
):
    return await service.grant_points(identity, user_id, body.amount, body.reason, body.problem_id)


@router.get("/{user_id}/points-history", response_model=PointsHistoryResponse)
async def points_history(
    user_id: str,
    identity: Identity = Depends(get_identity),
    service: DataService = Depends(get_data_service),
):
    """Ledger entries, newest first. Users see their own; the admin sees anyone's."""
    if user_id != identity.user_id:
        require_admin(identity, "view another user's points history")
    entries = await service.points_history(user_id)
    return PointsHistoryResponse(entries=entries, total_points=sum(e.points for e in entries))
