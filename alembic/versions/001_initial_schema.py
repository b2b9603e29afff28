"""Initial schema.

Creates users, problems, points_ledger and the singleton settings table.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id VARCHAR(128) PRIMARY KEY,
            email VARCHAR(320) NOT NULL,
            full_name VARCHAR(256) NOT NULL,
            total_points INTEGER NOT NULL DEFAULT 0,
            total_problems INTEGER NOT NULL DEFAULT 0,
            level VARCHAR(16) NOT NULL DEFAULT 'novice',
            is_admin BOOLEAN NOT NULL DEFAULT false,
            joined_at TIMESTAMPTZ NOT NULL,
            last_active TIMESTAMPTZ NOT NULL
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_users_email
        ON users(email)
    """)

    # --- Problems ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS problems (
            id VARCHAR(64) PRIMARY KEY,
            title VARCHAR(512) NOT NULL,
            description TEXT NOT NULL,
            category VARCHAR(32) NOT NULL,
            images JSONB NOT NULL DEFAULT '[]',
            author_id VARCHAR(128) NOT NULL,
            author_name VARCHAR(256) NOT NULL,
            points INTEGER NOT NULL DEFAULT 1,
            status VARCHAR(16) NOT NULL DEFAULT 'pending',
            reviewed BOOLEAN NOT NULL DEFAULT false,
            reviewed_at TIMESTAMPTZ,
            reviewed_by VARCHAR(128),
            admin_notes TEXT,
            created_at TIMESTAMPTZ NOT NULL,
            season_id VARCHAR(64) NOT NULL
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_problems_created_at
        ON problems(created_at)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_problems_author_id
        ON problems(author_id)
    """)

    # --- Points ledger ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS points_ledger (
            id VARCHAR(64) PRIMARY KEY,
            user_id VARCHAR(128) NOT NULL,
            problem_id VARCHAR(64),
            points INTEGER NOT NULL,
            reason VARCHAR(512) NOT NULL,
            source VARCHAR(32) NOT NULL,
            admin_id VARCHAR(128),
            created_at TIMESTAMPTZ NOT NULL,
            season_id VARCHAR(64) NOT NULL
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_points_ledger_user_created
        ON points_ledger(user_id, created_at)
    """)

    # --- Season settings (single row keyed 'current') ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS settings (
            key VARCHAR(32) PRIMARY KEY,
            current_season VARCHAR(128) NOT NULL,
            season_start_date TIMESTAMPTZ NOT NULL,
            season_end_date TIMESTAMPTZ NOT NULL,
            is_active BOOLEAN NOT NULL DEFAULT true,
            is_finished BOOLEAN NOT NULL DEFAULT false
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS settings CASCADE")
    op.execute("DROP TABLE IF EXISTS points_ledger CASCADE")
    op.execute("DROP TABLE IF EXISTS problems CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
