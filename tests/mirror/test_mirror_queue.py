"""Mirror replay queues: in-memory and Redis-backed."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from ptracker.mirror.queue import REDIS_QUEUE_KEY, MemoryMirrorQueue, RedisMirrorQueue

pytestmark = pytest.mark.asyncio


class TestMemoryQueue:
    async def test_fifo(self):
        queue = MemoryMirrorQueue()
        await queue.push({"n": 1})
        await queue.push({"n": 2})
        assert await queue.pop() == {"n": 1}
        assert await queue.pop() == {"n": 2}
        assert await queue.pop() is None

    async def test_full_queue_drops_oldest(self):
        queue = MemoryMirrorQueue(max_size=2)
        for n in range(3):
            await queue.push({"action": "updateUser", "n": n})
        assert await queue.size() == 2
        assert (await queue.pop())["n"] == 1

    async def test_push_front(self):
        queue = MemoryMirrorQueue()
        await queue.push({"n": 2})
        await queue.push_front({"n": 1})
        assert (await queue.pop())["n"] == 1


class TestRedisQueue:
    def _redis(self) -> MagicMock:
        redis = MagicMock()
        pipe = MagicMock()
        pipe.execute = AsyncMock(return_value=[1, True])
        redis.pipeline.return_value = pipe
        redis.lpush = AsyncMock()
        redis.lpop = AsyncMock()
        redis.llen = AsyncMock(return_value=3)
        return redis

    async def test_push_appends_and_trims(self):
        redis = self._redis()
        queue = RedisMirrorQueue(redis, max_size=50)
        await queue.push({"action": "addSurvey", "data": {"title": "Течь"}})

        pipe = redis.pipeline.return_value
        key, raw = pipe.rpush.call_args.args
        assert key == REDIS_QUEUE_KEY
        assert json.loads(raw)["data"]["title"] == "Течь"
        pipe.ltrim.assert_called_once_with(REDIS_QUEUE_KEY, -50, -1)
        pipe.execute.assert_awaited_once()

    async def test_pop_decodes(self):
        redis = self._redis()
        redis.lpop.return_value = json.dumps({"action": "updateUser", "data": {}})
        assert await RedisMirrorQueue(redis).pop() == {"action": "updateUser", "data": {}}

    async def test_pop_empty(self):
        redis = self._redis()
        redis.lpop.return_value = None
        assert await RedisMirrorQueue(redis).pop() is None

    async def test_size(self):
        assert await RedisMirrorQueue(self._redis()).size() == 3
