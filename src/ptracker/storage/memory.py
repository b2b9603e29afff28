"""Local-simulated backend: in-process collections with optional JSON file.

Each unit of work gets shallow copies of the collections. Records are
never mutated in place (sessions hand out and store copies), so swapping the
copies in on success is enough to commit, and dropping them rolls back.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ptracker.errors import BackendUnavailableError
from ptracker.gamification.schemas import Level, LedgerEntry, ProblemRecord, UserProfile
from ptracker.gamification.ranking import ranked_users
from ptracker.season.schemas import SeasonState
from ptracker.storage.base import Store, StoreSession

logger = logging.getLogger(__name__)


@dataclass
class _Collections:
    users: dict[str, UserProfile] = field(default_factory=dict)
    problems: dict[str, ProblemRecord] = field(default_factory=dict)
    ledger: list[LedgerEntry] = field(default_factory=list)
    settings: SeasonState | None = None

    def copy(self) -> _Collections:
        return _Collections(
            users=dict(self.users),
            problems=dict(self.problems),
            ledger=list(self.ledger),
            settings=self.settings,
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "users": [u.model_dump(mode="json") for u in self.users.values()],
            "problems": [p.model_dump(mode="json") for p in self.problems.values()],
            "pointsHistory": [e.model_dump(mode="json") for e in self.ledger],
            "settings": self.settings.model_dump(mode="json") if self.settings else None,
        }

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> _Collections:
        users = [UserProfile.model_validate(u) for u in data.get("users", [])]
        problems = [ProblemRecord.model_validate(p) for p in data.get("problems", [])]
        settings = data.get("settings")
        return cls(
            users={u.id: u for u in users},
            problems={p.id: p for p in problems},
            ledger=[LedgerEntry.model_validate(e) for e in data.get("pointsHistory", [])],
            settings=SeasonState.model_validate(settings) if settings else None,
        )


class MemoryStoreSession(StoreSession):
    """Unit of work over a working copy of the collections."""

    def __init__(self, working: _Collections) -> None:
        self._data = working
        self.dirty = False

    # --- Users ---

    async def get_user(self, user_id: str) -> UserProfile | None:
        user = self._data.users.get(user_id)
        return user.model_copy() if user else None

    async def find_user_by_email(self, email: str) -> UserProfile | None:
        needle = email.lower()
        for user in self._data.users.values():
            if user.email.lower() == needle:
                return user.model_copy()
        return None

    async def put_user(self, user: UserProfile) -> None:
        self.dirty = True
        self._data.users[user.id] = user.model_copy()

    async def delete_user(self, user_id: str) -> None:
        self.dirty = True
        self._data.users.pop(user_id, None)

    async def list_users(self) -> list[UserProfile]:
        users = sorted(self._data.users.values(), key=lambda u: (u.joined_at, u.id))
        return [u.model_copy() for u in users]

    async def leaderboard_candidates(self) -> list[UserProfile]:
        return [u.model_copy() for u in ranked_users(self._data.users.values())]

    async def reset_user_stats(self) -> None:
        self.dirty = True
        self._data.users = {
            uid: u.model_copy(update={
                "total_points": 0,
                "total_problems": 0,
                "level": Level.NOVICE,
            })
            for uid, u in self._data.users.items()
        }

    async def delete_all_users(self) -> None:
        self.dirty = True
        self._data.users = {}

    # --- Problems ---

    async def get_problem(self, problem_id: str) -> ProblemRecord | None:
        problem = self._data.problems.get(problem_id)
        return problem.model_copy(deep=True) if problem else None

    async def put_problem(self, problem: ProblemRecord) -> None:
        self.dirty = True
        self._data.problems[problem.id] = problem.model_copy(deep=True)

    async def list_problems(self, author_id: str | None = None) -> list[ProblemRecord]:
        # Ids are time-ordered, so they break created_at ties like the SQL backend.
        problems = [
            p for p in self._data.problems.values()
            if author_id is None or p.author_id == author_id
        ]
        problems.sort(key=lambda p: (p.created_at, p.id), reverse=True)
        return [p.model_copy(deep=True) for p in problems]

    async def count_problems(self, author_id: str | None = None) -> int:
        if author_id is None:
            return len(self._data.problems)
        return sum(1 for p in self._data.problems.values() if p.author_id == author_id)

    async def delete_problems(self, author_id: str | None = None) -> None:
        self.dirty = True
        if author_id is None:
            self._data.problems = {}
            return
        self._data.problems = {
            pid: p for pid, p in self._data.problems.items() if p.author_id != author_id
        }

    # --- Ledger ---

    async def append_ledger(self, entry: LedgerEntry) -> None:
        self.dirty = True
        self._data.ledger.append(entry.model_copy())

    async def list_ledger(self, user_id: str | None = None) -> list[LedgerEntry]:
        entries = [
            e for e in self._data.ledger
            if user_id is None or e.user_id == user_id
        ]
        entries.sort(key=lambda e: (e.created_at, e.id), reverse=True)
        return [e.model_copy() for e in entries]

    async def sum_ledger(self, user_id: str) -> int:
        return sum(e.points for e in self._data.ledger if e.user_id == user_id)

    async def delete_ledger(self, user_id: str | None = None) -> None:
        self.dirty = True
        if user_id is None:
            self._data.ledger = []
            return
        self._data.ledger = [e for e in self._data.ledger if e.user_id != user_id]

    # --- Settings ---

    async def get_settings(self) -> SeasonState | None:
        return self._data.settings.model_copy() if self._data.settings else None

    async def put_settings(self, state: SeasonState) -> None:
        self.dirty = True
        self._data.settings = state.model_copy()


class MemoryStore(Store):
    """In-process store, optionally persisted to a JSON file after each commit."""

    name = "memory"

    def __init__(self, data_path: str | Path | None = None) -> None:
        self._path = Path(data_path) if data_path else None
        self._data = self._load()
        self._lock = asyncio.Lock()

    def _load(self) -> _Collections:
        if self._path is None or not self._path.exists():
            return _Collections()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            data = _Collections.from_json(raw)
        except (OSError, ValueError) as e:
            msg = f"Cannot load local data file {self._path}: {e}"
            raise BackendUnavailableError(msg) from e
        logger.info("Loaded local data from %s (%d users)", self._path, len(data.users))
        return data

    def _persist(self, data: _Collections) -> None:
        if self._path is None:
            return
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(
                json.dumps(data.to_json(), ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
            os.replace(tmp, self._path)
        except OSError as e:
            msg = f"Cannot write local data file {self._path}: {e}"
            raise BackendUnavailableError(msg) from e

    @asynccontextmanager
    async def session(self) -> AsyncIterator[StoreSession]:
        async with self._lock:
            working = self._data.copy()
            session = MemoryStoreSession(working)
            yield session
            # Only reached when the block did not raise.
            if session.dirty:
                self._persist(working)
                self._data = working

    async def ping(self) -> bool:
        return True
