import asyncio
import logging
import os
import sqlite3
import subprocess
import sys
import uuid
from datetime import datetime, timezone
from typing import Optional, Union

from sqlalchemy.engine import make_url

import config
from config import ConfigurationError
from models import Task, TaskCreate, TaskUpdate

logger = logging.getLogger(__name__)

BACKEND_DIR = os.path.dirname(os.path.abspath(__file__))

COLUMNS = (
    "id",
    "title",
    "description",
    "category",
    "priority",
    "completed",
    "created_at",
    "completed_at",
    "ai_generated",
    "estimated_time",
)


def database_path(url: str) -> str:
    """Absolute file path named by a sqlite:// URL."""
    parsed = make_url(url)
    if not parsed.drivername.startswith("sqlite"):
        raise ConfigurationError(f"Unsupported database URL scheme: {parsed.drivername}")
    if not parsed.database or parsed.database == ":memory:":
        raise ConfigurationError("DATABASE_URL must name a database file")
    return os.path.abspath(parsed.database)


async def init_db(path: str):
    """Initialize database by running Alembic migrations."""
    # Alembic runs from the backend directory, so hand it an absolute URL
    process = await asyncio.create_subprocess_exec(
        sys.executable, "-m", "alembic", "upgrade", "head",
        cwd=BACKEND_DIR,
        env={**os.environ, "DATABASE_URL": f"sqlite:///{path}"},
    )
    returncode = await process.wait()
    if returncode != 0:
        raise subprocess.CalledProcessError(returncode, ["alembic", "upgrade", "head"])


def _open_sqlite(path: str) -> sqlite3.Connection:
    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


class Database:
    """
    Lazily opened sqlite connection shared by every request in the process.

    The first connect() starts opening the store; callers arriving while
    that is in flight await the same attempt. A failed attempt is dropped
    so the next call starts over. An attempt that finishes after close()
    has its connection closed instead of kept.
    """

    def __init__(self, url: Optional[str] = None):
        self.url = url
        self._conn: Optional[sqlite3.Connection] = None
        self._pending: Optional[asyncio.Future] = None
        self._generation = 0

    @property
    def connected(self) -> bool:
        return self._conn is not None

    async def connect(self) -> sqlite3.Connection:
        if self._conn is not None:
            return self._conn

        if self._pending is None:
            self._pending = asyncio.ensure_future(self._open())
        pending = self._pending
        generation = self._generation

        try:
            conn = await asyncio.shield(pending)
        except Exception:
            if self._pending is pending:
                self._pending = None
            raise

        if generation != self._generation:
            conn.close()
            raise sqlite3.ProgrammingError("Database was closed while connecting")

        self._conn = conn
        if self._pending is pending:
            self._pending = None
        return conn

    async def _open(self) -> sqlite3.Connection:
        url = self.url or config.DATABASE_URL
        if not url:
            raise ConfigurationError("Please define the DATABASE_URL environment variable")

        try:
            path = database_path(url)
            logger.info("Connecting to database at %s", path)
            await init_db(path)
            conn = await asyncio.to_thread(_open_sqlite, path)
        except Exception as e:
            logger.error("Database connection failed (%s): %s", type(e).__name__, e)
            raise

        logger.info("Database connection established")
        return conn

    def close(self):
        if self._conn is not None:
            self._conn.close()
            logger.info("Database connection closed")
        self._conn = None
        self._pending = None
        self._generation += 1


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat(timespec="microseconds") if value is not None else None


def _row_to_task(row) -> Task:
    """Convert a database row to a Task model."""
    return Task(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        category=row["category"],
        priority=row["priority"],
        completed=bool(row["completed"]),
        created_at=row["created_at"],
        completed_at=row["completed_at"],
        ai_generated=bool(row["ai_generated"]),
        estimated_time=row["estimated_time"],
    )


def _task_to_row(task: Task) -> dict:
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "category": task.category,
        "priority": task.priority,
        "completed": int(task.completed),
        "created_at": _iso(task.created_at),
        "completed_at": _iso(task.completed_at),
        "ai_generated": int(task.ai_generated),
        "estimated_time": task.estimated_time,
    }


def get_all_tasks(conn: sqlite3.Connection) -> list[Task]:
    """All tasks, newest first."""
    rows = conn.execute(
        "SELECT * FROM tasks ORDER BY created_at DESC, rowid DESC"
    ).fetchall()
    return [_row_to_task(row) for row in rows]


def find_task_by_id_db(conn: sqlite3.Connection, task_id: str) -> Optional[Task]:
    row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
    return _row_to_task(row) if row else None


def find_one_task(conn: sqlite3.Connection) -> Optional[Task]:
    """Any single task, or None when the table is empty."""
    row = conn.execute("SELECT * FROM tasks LIMIT 1").fetchone()
    return _row_to_task(row) if row else None


def create_task_db(conn: sqlite3.Connection, task_data: Union[TaskCreate, dict]) -> Task:
    """Validate and insert a task.

    id and created_at are assigned here unless the caller supplied them.
    Raises pydantic.ValidationError for a missing/blank title or an
    unknown priority.
    """
    if isinstance(task_data, dict):
        task_data = TaskCreate.model_validate(task_data)

    task = Task(
        **task_data.model_dump(exclude={"id", "created_at"}),
        id=task_data.id or str(uuid.uuid4()),
        created_at=task_data.created_at or datetime.now(timezone.utc),
    )

    values = _task_to_row(task)
    placeholders = ", ".join("?" for _ in COLUMNS)
    conn.execute(
        f"INSERT INTO tasks ({', '.join(COLUMNS)}) VALUES ({placeholders})",
        [values[column] for column in COLUMNS]
    )
    conn.commit()
    return task


def update_task_db(
    conn: sqlite3.Connection,
    task_id: str,
    updates: Union[TaskUpdate, dict]
) -> Optional[Task]:
    """
    Apply the fields present in `updates` to a task and re-validate it.

    Returns None if no task has this id. Only columns whose value actually
    changes are written.
    """
    if isinstance(updates, dict):
        updates = TaskUpdate.model_validate(updates)

    current = find_task_by_id_db(conn, task_id)
    if current is None:
        return None

    merged = Task.model_validate({
        **current.model_dump(),
        **updates.model_dump(exclude_unset=True),
    })

    old_values = _task_to_row(current)
    changes = {
        column: value
        for column, value in _task_to_row(merged).items()
        if old_values[column] != value
    }

    if changes:
        set_clause = ", ".join(f"{column} = ?" for column in changes)
        conn.execute(
            f"UPDATE tasks SET {set_clause} WHERE id = ?",
            [*changes.values(), task_id]
        )
        conn.commit()

    return find_task_by_id_db(conn, task_id)


def delete_task_db(conn: sqlite3.Connection, task_id: str) -> Optional[Task]:
    """Delete a task and return it, or None if no task has this id."""
    task = find_task_by_id_db(conn, task_id)
    if task is None:
        return None
    conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
    conn.commit()
    return task


def count_tasks(
    conn: sqlite3.Connection,
    completed: Optional[bool] = None,
    ai_generated: Optional[bool] = None
) -> int:
    clauses = []
    params = []
    if completed is not None:
        clauses.append("completed = ?")
        params.append(int(completed))
    if ai_generated is not None:
        clauses.append("ai_generated = ?")
        params.append(int(ai_generated))

    sql = "SELECT COUNT(*) FROM tasks"
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    return conn.execute(sql, params).fetchone()[0]
