"""
Shared pytest fixtures for backend tests.
Each test gets its own temp-file SQLite database.
"""
import asyncio
import pytest
import sqlite3
import sys
import os
from types import SimpleNamespace

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import config
import database
from database import Database

SCHEMA = """
    CREATE TABLE tasks (
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
    );
"""


async def schema_exists(path):
    """Stand-in for init_db when the schema was created by db_path."""


@pytest.fixture
def db_path(tmp_path):
    """Temp database file with the tasks table created directly (no alembic)."""
    path = str(tmp_path / "test.db")
    conn = sqlite3.connect(path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def test_db(db_path, monkeypatch):
    """
    Unconnected Database handle pointing at the temp file.
    init_db is stubbed out because the schema already exists.
    """
    monkeypatch.setattr(database, "init_db", schema_exists)
    monkeypatch.setattr(config, "DATABASE_URL", f"sqlite:///{db_path}")
    db = Database(f"sqlite:///{db_path}")
    yield db
    db.close()


@pytest.fixture
def conn(test_db):
    """Open connection from the test Database."""
    return asyncio.run(test_db.connect())


@pytest.fixture
def app_client(test_db, monkeypatch):
    """
    Test client for the FastAPI app with the test Database injected and
    no AI client configured.
    """
    from fastapi.testclient import TestClient
    import main
    from suggestions import get_ai_client

    monkeypatch.setattr(config, "STRICT_VALIDATION", False)
    main.app.dependency_overrides[main.get_database] = lambda: test_db
    main.app.dependency_overrides[get_ai_client] = lambda: None

    with TestClient(main.app) as client:
        yield client

    main.app.dependency_overrides.clear()


class FakeMessages:
    """Stands in for AsyncAnthropic().messages and records each call."""

    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        content = [] if self.text is None else [SimpleNamespace(type="text", text=self.text)]
        return SimpleNamespace(content=content)


class FakeAnthropic:
    def __init__(self, text=None, error=None):
        self.messages = FakeMessages(text=text, error=error)


@pytest.fixture
def fake_ai():
    """Factory for fake completion clients."""
    return FakeAnthropic


@pytest.fixture
def ai_client(app_client):
    """Install a completion client into the app: ai_client(FakeAnthropic(...))."""
    import main
    from suggestions import get_ai_client

    def install(client):
        main.app.dependency_overrides[get_ai_client] = lambda: client
        return client

    return install
