"""Initial schema - tasks table

Revision ID: 001
Revises: None
Create Date: 2025-06-02

"""
from typing import Sequence, Union

from alembic import op
from sqlalchemy import text

revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()

    # Priority is enforced here as well as in the pydantic models
    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS tasks (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL CHECK (length(title) > 0),
            description TEXT,
            category TEXT NOT NULL DEFAULT 'personal',
            priority TEXT NOT NULL DEFAULT 'medium'
                CHECK (priority IN ('low', 'medium', 'high')),
            completed INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            completed_at TEXT,
            ai_generated INTEGER NOT NULL DEFAULT 0,
            estimated_time INTEGER NOT NULL DEFAULT 25
        )
    """))

    conn.execute(text(
        "CREATE INDEX IF NOT EXISTS ix_tasks_created_at ON tasks (created_at)"
    ))


def downgrade() -> None:
    conn = op.get_bind()
    conn.execute(text("DROP INDEX IF EXISTS ix_tasks_created_at"))
    conn.execute(text("DROP TABLE IF EXISTS tasks"))
