"""ORM models for the remote store.

One table per document collection: users, problems, points_ledger and the
singleton settings row keyed "current". Matches alembic 001_initial_schema.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from ptracker.db.base import Base

SETTINGS_KEY = "current"

_JSON = JSON().with_variant(JSONB(), "postgresql")


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Per-user aggregate: a materialized view over points_ledger."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(String(256), nullable=False)
    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_problems: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    level: Mapped[str] = mapped_column(String(16), nullable=False, default="novice", server_default="novice")
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_active: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Problems
# ---------------------------------------------------------------------------


class Problem(Base):
    """A submitted problem report."""

    __tablename__ = "problems"
    __table_args__ = (Index("idx_problems_created_at", "created_at"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    images: Mapped[list[str]] = mapped_column(_JSON, nullable=False, default=list)
    author_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    author_name: Mapped[str] = mapped_column(String(256), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", server_default="pending")
    reviewed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    season_id: Mapped[str] = mapped_column(String(64), nullable=False)


# ---------------------------------------------------------------------------
# Points ledger
# ---------------------------------------------------------------------------


class PointsLedger(Base):
    """Append-only point grants. Source of truth for users.total_points."""

    __tablename__ = "points_ledger"
    __table_args__ = (Index("idx_points_ledger_user_created", "user_id", "created_at"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    problem_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(512), nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    admin_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    season_id: Mapped[str] = mapped_column(String(64), nullable=False)


# ---------------------------------------------------------------------------
# Season settings (singleton)
# ---------------------------------------------------------------------------


class SeasonSettings(Base):
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(32), primary_key=True, default=SETTINGS_KEY)
    current_season: Mapped[str] = mapped_column(String(128), nullable=False)
    season_start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    season_end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_finished: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
