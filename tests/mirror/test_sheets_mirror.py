"""Spreadsheet mirror client: delivery, queueing and replay."""

from __future__ import annotations

import json

import httpx
import pytest

from ptracker.mirror.queue import MemoryMirrorQueue
from ptracker.mirror.sheets import ADD_SURVEY, UPDATE_USER, SheetsMirror

pytestmark = pytest.mark.asyncio

URL = "https://script.example.com/macros/s/abc/exec"


class _Recorder:
    """MockTransport handler that records requests and answers as configured."""

    def __init__(self, status: int = 200, body: dict | None = None) -> None:
        self.status = status
        self.body = body if body is not None else {"status": "success"}
        self.requests: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        return httpx.Response(self.status, json=self.body)


def _mirror(handler, queue=None) -> SheetsMirror:
    return SheetsMirror(webapp_url=URL, queue=queue, transport=httpx.MockTransport(handler))


class TestPush:
    async def test_delivered_payload_shape(self):
        recorder = _Recorder()
        mirror = _mirror(recorder)
        assert await mirror.push(ADD_SURVEY, {"problemId": "p1"})
        assert recorder.requests == [{"action": ADD_SURVEY, "data": {"problemId": "p1"}}]
        assert await mirror.pending() == 0

    async def test_http_error_is_queued(self):
        mirror = _mirror(_Recorder(status=500))
        assert not await mirror.push(UPDATE_USER, {"id": "u1"})
        assert await mirror.pending() == 1

    async def test_script_error_body_is_queued(self):
        mirror = _mirror(_Recorder(body={"status": "error", "message": "sheet locked"}))
        assert not await mirror.push(UPDATE_USER, {"id": "u1"})
        assert await mirror.pending() == 1

    async def test_transport_failure_never_raises(self):
        def boom(_request):
            raise httpx.ConnectError("unreachable")

        mirror = _mirror(boom)
        assert not await mirror.push(ADD_SURVEY, {})
        assert await mirror.pending() == 1

    async def test_unconfigured_mirror_queues(self):
        mirror = SheetsMirror()
        assert not mirror.enabled
        assert not await mirror.push(ADD_SURVEY, {})
        assert await mirror.pending() == 1

    async def test_unknown_action_rejected(self):
        with pytest.raises(ValueError, match="Unknown mirror action"):
            await SheetsMirror().push("dropTables", {})


class TestReplay:
    async def test_replay_in_order(self):
        queue = MemoryMirrorQueue()
        await queue.push({"action": ADD_SURVEY, "data": {"n": 1}})
        await queue.push({"action": ADD_SURVEY, "data": {"n": 2}})
        recorder = _Recorder()

        assert await _mirror(recorder, queue).replay() == 2
        assert [r["data"]["n"] for r in recorder.requests] == [1, 2]
        assert await queue.size() == 0

    async def test_replay_stops_at_first_failure(self):
        queue = MemoryMirrorQueue()
        await queue.push({"action": ADD_SURVEY, "data": {"n": 1}})
        await queue.push({"action": ADD_SURVEY, "data": {"n": 2}})

        assert await _mirror(_Recorder(status=503), queue).replay() == 0
        assert await queue.size() == 2
        assert (await queue.pop())["data"]["n"] == 1

    async def test_replay_without_url_is_noop(self):
        mirror = SheetsMirror()
        await mirror.push(ADD_SURVEY, {})
        assert await mirror.replay() == 0
        assert await mirror.pending() == 1
