"""Best-effort spreadsheet mirror.

Pushes denormalized copies of users and problems to a Google Apps Script
web app (``{"action": ..., "data": ...}`` POSTs). A failed or unconfigured
push never raises: the payload is queued locally and can be replayed later.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from ptracker.mirror.queue import MemoryMirrorQueue, MirrorQueue

logger = structlog.get_logger()

ADD_SURVEY = "addSurvey"
UPDATE_USER = "updateUser"
ADD_BONUS_POINTS = "addBonusPoints"
SYNC_ALL_DATA = "syncAllData"

ACTIONS = frozenset({ADD_SURVEY, UPDATE_USER, ADD_BONUS_POINTS, SYNC_ALL_DATA})


class SheetsMirror:
    """HTTP client for the spreadsheet web app with a local replay queue."""

    def __init__(
        self,
        webapp_url: str = "",
        queue: MirrorQueue | None = None,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.webapp_url = webapp_url
        self.queue = queue or MemoryMirrorQueue()
        self.timeout = timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.webapp_url)

    async def push(self, action: str, data: dict[str, Any]) -> bool:
        """Send one payload. Returns True if delivered, False if queued."""
        if action not in ACTIONS:
            msg = f"Unknown mirror action: {action}"
            raise ValueError(msg)

        payload = {"action": action, "data": data}
        if self.enabled and await self._send(payload):
            return True

        if not self.enabled:
            logger.warning("mirror_not_configured", action=action)
        await self._enqueue(payload)
        return False

    async def replay(self) -> int:
        """Resend queued payloads in order. Stops at the first failure.

        Returns the number of payloads delivered.
        """
        if not self.enabled:
            return 0

        delivered = 0
        while True:
            payload = await self.queue.pop()
            if payload is None:
                break
            if not await self._send(payload):
                await self.queue.push_front(payload)
                break
            delivered += 1

        if delivered:
            logger.info("mirror_replayed", delivered=delivered)
        return delivered

    async def pending(self) -> int:
        return await self.queue.size()

    async def _send(self, payload: dict[str, Any]) -> bool:
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(self.webapp_url, json=payload)
                response.raise_for_status()
        except httpx.HTTPError:
            logger.warning("mirror_push_failed", action=payload.get("action"), exc_info=True)
            return False

        # The web app answers 200 even for script errors; the body tells.
        try:
            body = response.json()
        except ValueError:
            body = {}
        if isinstance(body, dict) and body.get("status") == "error":
            logger.warning("mirror_push_rejected", action=payload.get("action"), message=body.get("message"))
            return False

        logger.info("mirror_pushed", action=payload.get("action"))
        return True

    async def _enqueue(self, payload: dict[str, Any]) -> None:
        try:
            await self.queue.push(payload)
        except Exception:
            logger.error("mirror_queue_failed", action=payload.get("action"), exc_info=True)
