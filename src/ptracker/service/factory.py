"""Build the DataService for the configured backend."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ptracker.auth.gate import AdminGate
from ptracker.config import Settings
from ptracker.database import get_session_factory
from ptracker.errors import ValidationError
from ptracker.mirror.queue import MemoryMirrorQueue, MirrorQueue, RedisMirrorQueue
from ptracker.mirror.sheets import SheetsMirror
from ptracker.service.data_service import DataService
from ptracker.storage.base import Store
from ptracker.storage.memory import MemoryStore
from ptracker.storage.sql import SqlStore

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

BACKENDS = ("memory", "sql")


def _create_store(settings: Settings) -> Store:
    """Select the storage backend based on configuration."""
    backend = settings.backend.lower()
    if backend == "memory":
        return MemoryStore(settings.local_data_path or None)
    if backend == "sql":
        # Requires init_db() to have run.
        return SqlStore(get_session_factory())
    msg = f"Unknown storage backend {settings.backend!r}. Expected one of: {', '.join(BACKENDS)}"
    raise ValidationError(msg)


def _create_mirror(settings: Settings, redis: Redis | None) -> SheetsMirror:
    queue: MirrorQueue
    if settings.mirror_queue == "redis" and redis is not None:
        queue = RedisMirrorQueue(redis, max_size=settings.mirror_queue_max)
    else:
        if settings.mirror_queue == "redis":
            logger.warning("Mirror queue set to redis but Redis is not configured, using memory")
        queue = MemoryMirrorQueue(max_size=settings.mirror_queue_max)
    return SheetsMirror(
        webapp_url=settings.sheets_webapp_url,
        queue=queue,
        timeout=settings.sheets_timeout_seconds,
    )


def create_data_service(settings: Settings, redis: Redis | None = None) -> DataService:
    """Wire store, admin gate and spreadsheet mirror into one facade."""
    store = _create_store(settings)
    service = DataService(
        store=store,
        gate=AdminGate(settings.admin_emails),
        mirror=_create_mirror(settings, redis),
        season_length_days=settings.season_default_length_days,
        leaderboard_top_n=settings.leaderboard_top_n,
    )
    logger.info("Data service ready (backend=%s)", store.name)
    return service
