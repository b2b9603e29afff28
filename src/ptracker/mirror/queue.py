"""Local replay queue for spreadsheet mirror payloads that could not be sent."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

REDIS_QUEUE_KEY = "mirror:queue"


class MirrorQueue(ABC):
    """FIFO of ``{"action", "data"}`` payloads awaiting replay."""

    def __init__(self, max_size: int = 1000) -> None:
        self.max_size = max_size

    @abstractmethod
    async def push(self, payload: dict[str, Any]) -> None:
        """Append a payload, dropping the oldest one when full."""

    @abstractmethod
    async def push_front(self, payload: dict[str, Any]) -> None:
        """Return a payload to the head of the queue after a failed replay."""

    @abstractmethod
    async def pop(self) -> dict[str, Any] | None: ...

    @abstractmethod
    async def size(self) -> int: ...


class MemoryMirrorQueue(MirrorQueue):
    def __init__(self, max_size: int = 1000) -> None:
        super().__init__(max_size)
        self._items: deque[dict[str, Any]] = deque()

    async def push(self, payload: dict[str, Any]) -> None:
        if len(self._items) >= self.max_size:
            dropped = self._items.popleft()
            logger.warning("Mirror queue full, dropping oldest %s payload", dropped.get("action"))
        self._items.append(payload)

    async def push_front(self, payload: dict[str, Any]) -> None:
        self._items.appendleft(payload)

    async def pop(self) -> dict[str, Any] | None:
        return self._items.popleft() if self._items else None

    async def size(self) -> int:
        return len(self._items)


class RedisMirrorQueue(MirrorQueue):
    """Queue kept in a Redis list so it survives process restarts."""

    def __init__(self, redis: Redis, max_size: int = 1000, key: str = REDIS_QUEUE_KEY) -> None:
        super().__init__(max_size)
        self._redis = redis
        self._key = key

    async def push(self, payload: dict[str, Any]) -> None:
        pipe = self._redis.pipeline()
        pipe.rpush(self._key, json.dumps(payload, ensure_ascii=False))
        # Keep the newest max_size entries.
        pipe.ltrim(self._key, -self.max_size, -1)
        await pipe.execute()

    async def push_front(self, payload: dict[str, Any]) -> None:
        await self._redis.lpush(self._key, json.dumps(payload, ensure_ascii=False))

    async def pop(self) -> dict[str, Any] | None:
        raw = await self._redis.lpop(self._key)
        return json.loads(raw) if raw else None

    async def size(self) -> int:
        return int(await self._redis.llen(self._key))
