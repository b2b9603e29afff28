"""Admin data endpoints: backup/restore and the spreadsheet mirror."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel

from ptracker.auth.dependencies import get_identity
from ptracker.auth.gate import Identity, require_admin
from ptracker.dependencies import get_data_service
from ptracker.service.data_service import DataService

router = APIRouter(prefix="/api/v1/admin", tags=["Admin"])


class MirrorStatusResponse(BaseModel):
    enabled: bool
    pending: int


class MirrorSyncResponse(BaseModel):
    delivered: bool
    pending: int


class MirrorReplayResponse(BaseModel):
    delivered: int
    pending: int


@router.get("/export")
async def export_data(
    identity: Identity = Depends(get_identity),
    service: DataService = Depends(get_data_service),
) -> dict[str, Any]:
    return await service.export_data(identity)


@router.post("/import", status_code=204)
async def import_data(
    payload: dict[str, Any] = Body(...),
    identity: Identity = Depends(get_identity),
    service: DataService = Depends(get_data_service),
) -> None:
    """Replace all data with a backup produced by /export."""
    await service.import_data(identity, payload)


@router.get("/mirror", response_model=MirrorStatusResponse)
async def mirror_status(
    identity: Identity = Depends(get_identity),
    service: DataService = Depends(get_data_service),
):
    require_admin(identity, "view the spreadsheet mirror")
    enabled = service.mirror is not None and service.mirror.enabled
    return MirrorStatusResponse(enabled=enabled, pending=await service.mirror_pending())


@router.post("/mirror/sync", response_model=MirrorSyncResponse)
async def mirror_sync(
    identity: Identity = Depends(get_identity),
    service: DataService = Depends(get_data_service),
):
    """Push a full copy of users and problems to the spreadsheet."""
    delivered = await service.sync_mirror(identity)
    return MirrorSyncResponse(delivered=delivered, pending=await service.mirror_pending())


@router.post("/mirror/replay", response_model=MirrorReplayResponse)
async def mirror_replay(
    identity: Identity = Depends(get_identity),
    service: DataService = Depends(get_data_service),
):
    delivered = await service.replay_mirror(identity)
    return MirrorReplayResponse(delivered=delivered, pending=await service.mirror_pending())
