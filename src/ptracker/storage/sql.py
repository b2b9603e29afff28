"""Remote document-store backend over SQLAlchemy async.

Every unit of work is one database transaction, so multi-document updates
(problem + ledger + user aggregate, or a whole season reset) commit or roll
back together.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy import delete, func, select, text, update
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ptracker.clock import ensure_utc
from ptracker.db.models import SETTINGS_KEY, PointsLedger, Problem, SeasonSettings, User
from ptracker.errors import BackendUnavailableError
from ptracker.gamification.schemas import Level, LedgerEntry, ProblemRecord, UserProfile
from ptracker.season.schemas import SeasonState
from ptracker.storage.base import Store, StoreSession

logger = logging.getLogger(__name__)


def _opt_utc(value: datetime | None) -> datetime | None:
    return ensure_utc(value) if value is not None else None


# ---------------------------------------------------------------------------
# Row <-> record mapping
# ---------------------------------------------------------------------------


def _user_record(row: User) -> UserProfile:
    return UserProfile(
        id=row.id,
        email=row.email,
        full_name=row.full_name,
        total_points=row.total_points,
        total_problems=row.total_problems,
        level=row.level,
        is_admin=row.is_admin,
        joined_at=ensure_utc(row.joined_at),
        last_active=ensure_utc(row.last_active),
    )


def _problem_record(row: Problem) -> ProblemRecord:
    return ProblemRecord(
        id=row.id,
        title=row.title,
        description=row.description,
        category=row.category,
        images=list(row.images or []),
        author_id=row.author_id,
        author_name=row.author_name,
        points=row.points,
        status=row.status,
        reviewed=row.reviewed,
        reviewed_at=_opt_utc(row.reviewed_at),
        reviewed_by=row.reviewed_by,
        admin_notes=row.admin_notes,
        created_at=ensure_utc(row.created_at),
        season_id=row.season_id,
    )


def _ledger_record(row: PointsLedger) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,
        user_id=row.user_id,
        problem_id=row.problem_id,
        points=row.points,
        reason=row.reason,
        source=row.source,
        admin_id=row.admin_id,
        created_at=ensure_utc(row.created_at),
        season_id=row.season_id,
    )


def _settings_record(row: SeasonSettings) -> SeasonState:
    return SeasonState(
        current_season=row.current_season,
        season_start_date=ensure_utc(row.season_start_date),
        season_end_date=ensure_utc(row.season_end_date),
        is_active=row.is_active,
        is_finished=row.is_finished,
    )


class SqlStoreSession(StoreSession):
    """Unit of work bound to one AsyncSession transaction."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    # --- Users ---

    async def get_user(self, user_id: str) -> UserProfile | None:
        row = await self._db.get(User, user_id)
        return _user_record(row) if row else None

    async def find_user_by_email(self, email: str) -> UserProfile | None:
        result = await self._db.execute(
            select(User).where(func.lower(User.email) == email.lower()).limit(1)
        )
        row = result.scalar_one_or_none()
        return _user_record(row) if row else None

    async def put_user(self, user: UserProfile) -> None:
        values = user.model_dump()
        values["level"] = user.level.value
        row = await self._db.get(User, user.id)
        if row is None:
            self._db.add(User(**values))
        else:
            for key, value in values.items():
                setattr(row, key, value)
        await self._db.flush()

    async def delete_user(self, user_id: str) -> None:
        await self._db.execute(delete(User).where(User.id == user_id))

    async def list_users(self) -> list[UserProfile]:
        result = await self._db.execute(
            select(User).order_by(User.joined_at.asc(), User.id.asc())
        )
        return [_user_record(r) for r in result.scalars()]

    async def leaderboard_candidates(self) -> list[UserProfile]:
        result = await self._db.execute(
            select(User)
            .where(User.is_admin.is_(False), User.total_points > 0)
            .order_by(User.total_points.desc(), User.joined_at.asc(), User.id.asc())
        )
        return [_user_record(r) for r in result.scalars()]

    async def reset_user_stats(self) -> None:
        await self._db.execute(
            update(User).values(total_points=0, total_problems=0, level=Level.NOVICE.value)
        )

    async def delete_all_users(self) -> None:
        await self._db.execute(delete(User))

    # --- Problems ---

    async def get_problem(self, problem_id: str) -> ProblemRecord | None:
        row = await self._db.get(Problem, problem_id)
        return _problem_record(row) if row else None

    async def put_problem(self, problem: ProblemRecord) -> None:
        values = problem.model_dump()
        values["category"] = problem.category.value
        values["status"] = problem.status.value
        values["images"] = list(problem.images)
        row = await self._db.get(Problem, problem.id)
        if row is None:
            self._db.add(Problem(**values))
        else:
            for key, value in values.items():
                setattr(row, key, value)
        await self._db.flush()

    async def list_problems(self, author_id: str | None = None) -> list[ProblemRecord]:
        stmt = select(Problem).order_by(Problem.created_at.desc(), Problem.id.desc())
        if author_id is not None:
            stmt = stmt.where(Problem.author_id == author_id)
        result = await self._db.execute(stmt)
        return [_problem_record(r) for r in result.scalars()]

    async def count_problems(self, author_id: str | None = None) -> int:
        stmt = select(func.count(Problem.id))
        if author_id is not None:
            stmt = stmt.where(Problem.author_id == author_id)
        result = await self._db.execute(stmt)
        return int(result.scalar_one())

    async def delete_problems(self, author_id: str | None = None) -> None:
        stmt = delete(Problem)
        if author_id is not None:
            stmt = stmt.where(Problem.author_id == author_id)
        await self._db.execute(stmt)

    # --- Ledger ---

    async def append_ledger(self, entry: LedgerEntry) -> None:
        values = entry.model_dump()
        values["source"] = entry.source.value
        self._db.add(PointsLedger(**values))
        await self._db.flush()

    async def list_ledger(self, user_id: str | None = None) -> list[LedgerEntry]:
        stmt = select(PointsLedger).order_by(PointsLedger.created_at.desc(), PointsLedger.id.desc())
        if user_id is not None:
            stmt = stmt.where(PointsLedger.user_id == user_id)
        result = await self._db.execute(stmt)
        return [_ledger_record(r) for r in result.scalars()]

    async def sum_ledger(self, user_id: str) -> int:
        result = await self._db.execute(
            select(func.coalesce(func.sum(PointsLedger.points), 0))
            .where(PointsLedger.user_id == user_id)
        )
        return int(result.scalar_one())

    async def delete_ledger(self, user_id: str | None = None) -> None:
        stmt = delete(PointsLedger)
        if user_id is not None:
            stmt = stmt.where(PointsLedger.user_id == user_id)
        await self._db.execute(stmt)

    # --- Settings ---

    async def get_settings(self) -> SeasonState | None:
        row = await self._db.get(SeasonSettings, SETTINGS_KEY)
        return _settings_record(row) if row else None

    async def put_settings(self, state: SeasonState) -> None:
        row = await self._db.get(SeasonSettings, SETTINGS_KEY)
        if row is None:
            row = SeasonSettings(key=SETTINGS_KEY)
            self._db.add(row)
        row.current_season = state.current_season
        row.season_start_date = state.season_start_date
        row.season_end_date = state.season_end_date
        row.is_active = state.is_active
        row.is_finished = state.is_finished
        await self._db.flush()


class SqlStore(Store):
    """Store backed by an async SQLAlchemy session factory."""

    name = "sql"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def session(self) -> AsyncIterator[StoreSession]:
        try:
            async with self._session_factory() as db, db.begin():
                yield SqlStoreSession(db)
        except (DBAPIError, OSError) as e:
            logger.warning("Storage transaction failed: %s", e)
            msg = "Storage backend unavailable, the operation was rolled back"
            raise BackendUnavailableError(msg) from e

    async def ping(self) -> bool:
        try:
            async with self._session_factory() as db:
                await db.execute(text("SELECT 1"))
        except (DBAPIError, OSError):
            return False
        return True
