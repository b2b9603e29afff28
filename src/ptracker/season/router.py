"""Season controller endpoints. Everything but reading is admin only."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from ptracker.auth.dependencies import get_identity
from ptracker.auth.gate import Identity
from ptracker.dependencies import get_data_service
from ptracker.season.schemas import ConfigureSeasonRequest, SeasonReport, SeasonResponse, SeasonState
from ptracker.service.data_service import DataService

router = APIRouter(prefix="/api/v1/season", tags=["Season"])


def _response(state: SeasonState) -> SeasonResponse:
    return SeasonResponse(**state.model_dump(), phase=state.phase)


@router.get("", response_model=SeasonResponse)
async def get_season(service: DataService = Depends(get_data_service)):
    return _response(await service.get_season_settings())


@router.put("", response_model=SeasonResponse)
async def configure_season(
    body: ConfigureSeasonRequest,
    identity: Identity = Depends(get_identity),
    service: DataService = Depends(get_data_service),
):
    state = await service.configure_season(
        identity, body.name, body.start_date, body.end_date, body.is_active,
    )
    return _response(state)


@router.post("/activate", response_model=SeasonResponse)
async def activate_season(
    identity: Identity = Depends(get_identity),
    service: DataService = Depends(get_data_service),
):
    return _response(await service.activate_season(identity))


@router.post("/deactivate", response_model=SeasonResponse)
async def deactivate_season(
    identity: Identity = Depends(get_identity),
    service: DataService = Depends(get_data_service),
):
    return _response(await service.deactivate_season(identity))


@router.post("/finish", response_model=SeasonReport)
async def finish_season(
    identity: Identity = Depends(get_identity),
    service: DataService = Depends(get_data_service),
):
    """Close the season and return the final standings."""
    return await service.finish_season(identity)


@router.post("/reset", response_model=SeasonResponse)
async def reset_season(
    identity: Identity = Depends(get_identity),
    service: DataService = Depends(get_data_service),
):
    """Wipe problems and points and start a new season."""
    return _response(await service.reset_season(identity))


@router.get("/report", response_model=SeasonReport)
async def get_report(service: DataService = Depends(get_data_service)):
    """Standings of a closed or expired season. 204 while a season is running."""
    report = await service.get_season_report()
    if report is None:
        return Response(status_code=204)
    return report
