"""Storage contract implemented by every persistence backend.

A ``Store`` hands out units of work. Everything done through one
``StoreSession`` becomes visible together when the ``session()`` block exits
normally, and not at all when it raises. Records going in and out are
copies: mutating a returned record never changes stored state until it is
written back with a ``put_*`` call.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager

from ptracker.gamification.schemas import LedgerEntry, ProblemRecord, UserProfile
from ptracker.season.schemas import SeasonState


class StoreSession(ABC):
    """Primitive reads and writes inside one unit of work."""

    # --- Users ---

    @abstractmethod
    async def get_user(self, user_id: str) -> UserProfile | None: ...

    @abstractmethod
    async def find_user_by_email(self, email: str) -> UserProfile | None: ...

    @abstractmethod
    async def put_user(self, user: UserProfile) -> None:
        """Insert or replace a user."""

    @abstractmethod
    async def delete_user(self, user_id: str) -> None: ...

    @abstractmethod
    async def list_users(self) -> list[UserProfile]:
        """All users ordered by joined_at ascending."""

    @abstractmethod
    async def leaderboard_candidates(self) -> list[UserProfile]:
        """Non-admin users with points, best first."""

    @abstractmethod
    async def reset_user_stats(self) -> None:
        """Zero totals and level of every user."""

    @abstractmethod
    async def delete_all_users(self) -> None: ...

    # --- Problems ---

    @abstractmethod
    async def get_problem(self, problem_id: str) -> ProblemRecord | None: ...

    @abstractmethod
    async def put_problem(self, problem: ProblemRecord) -> None: ...

    @abstractmethod
    async def list_problems(self, author_id: str | None = None) -> list[ProblemRecord]:
        """Problems ordered by created_at descending."""

    @abstractmethod
    async def count_problems(self, author_id: str | None = None) -> int: ...

    @abstractmethod
    async def delete_problems(self, author_id: str | None = None) -> None:
        """Delete one author's problems, or all of them when author_id is None."""

    # --- Ledger ---

    @abstractmethod
    async def append_ledger(self, entry: LedgerEntry) -> None: ...

    @abstractmethod
    async def list_ledger(self, user_id: str | None = None) -> list[LedgerEntry]:
        """Ledger entries ordered by created_at descending."""

    @abstractmethod
    async def sum_ledger(self, user_id: str) -> int: ...

    @abstractmethod
    async def delete_ledger(self, user_id: str | None = None) -> None: ...

    # --- Settings ---

    @abstractmethod
    async def get_settings(self) -> SeasonState | None: ...

    @abstractmethod
    async def put_settings(self, state: SeasonState) -> None: ...


class Store(ABC):
    """A persistence backend."""

    name: str = "abstract"

    @abstractmethod
    def session(self) -> AbstractAsyncContextManager[StoreSession]:
        """Open a unit of work."""

    @abstractmethod
    async def ping(self) -> bool:
        """Readiness check."""
