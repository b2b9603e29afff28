"""Health, readiness, and version endpoints."""

from fastapi import APIRouter, Depends

from ptracker.config import get_settings
from ptracker.dependencies import get_data_service
from ptracker.redis_client import redis_status
from ptracker.service.data_service import DataService

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe: returns 200 if the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(service: DataService = Depends(get_data_service)) -> dict[str, object]:
    """Readiness probe: checks the storage backend and, when configured, Redis."""
    checks: dict[str, object] = {}

    checks["storage"] = "ok" if await service.store.ping() else "error: unreachable"

    redis = await redis_status()
    if redis is not None:
        checks["redis"] = redis

    all_ok = all(v == "ok" for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "backend": service.backend_name, "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
