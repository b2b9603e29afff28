"""Health, readiness and version endpoints."""

from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

pytestmark = pytest.mark.asyncio


async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_ready_reports_backend(client: AsyncClient) -> None:
    data = (await client.get("/ready")).json()
    assert data["status"] == "ready"
    assert data["backend"] == "memory"
    assert data["checks"] == {"storage": "ok"}


async def test_version(client: AsyncClient) -> None:
    data = (await client.get("/version")).json()
    assert "version" in data
    assert "environment" in data


async def test_ready_includes_redis_when_configured(client: AsyncClient, monkeypatch) -> None:
    redis = AsyncMock()
    redis.ping.return_value = True
    monkeypatch.setattr("ptracker.redis_client._client", redis)

    data = (await client.get("/ready")).json()
    assert data["status"] == "ready"
    assert data["checks"] == {"storage": "ok", "redis": "ok"}


async def test_ready_degraded_when_redis_unreachable(client: AsyncClient, monkeypatch) -> None:
    redis = AsyncMock()
    redis.ping.side_effect = RedisConnectionError("connection refused")
    monkeypatch.setattr("ptracker.redis_client._client", redis)

    data = (await client.get("/ready")).json()
    assert data["status"] == "degraded"
    assert data["checks"]["redis"].startswith("error:")
