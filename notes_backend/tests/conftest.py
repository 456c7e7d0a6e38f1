from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from notes_backend.src.api.main import create_app
from notes_database.config import Settings
from notes_database.db import Database
from notes_database.init_db import init_db
from notes_database.operations import NotesDataAccess
from notes_database.queries import NoteQueries
from notes_database.schemas import NoteCreate, UserCreate


class StepClock:
    """Deterministic clock: every call returns a time one second later."""

    def __init__(self, start=datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self):
        value = self.current
        self.current += timedelta(seconds=1)
        return value


@pytest.fixture
def sqlite_url():
    """Fixture to provide a SQLite in-memory database URL for testing."""
    return "sqlite+aiosqlite://"


@pytest.fixture
async def database(sqlite_url):
    """Fresh in-memory database with tables created; disposed after the test."""
    db = Database(sqlite_url)
    await init_db(db)
    yield db
    await db.close()


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def dal(database, clock):
    return NotesDataAccess(database, clock=clock)


@pytest.fixture
def queries(database):
    return NoteQueries(database, case_sensitive=True)


@pytest.fixture
async def seeded(dal):
    """The johndoe/janedoe scenario: two notes for john (one important), one for jane."""
    john = await dal.create_user(UserCreate(username="johndoe", password="password123"))
    jane = await dal.create_user(UserCreate(username="janedoe", password="password456"))
    notes = [
        await dal.create_note(NoteCreate(title="Getting Started", content="intro", is_important=True, user_id=john.id)),
        await dal.create_note(NoteCreate(title="SQLite Setup", content="setup", is_important=False, user_id=john.id)),
        await dal.create_note(NoteCreate(title="My First Note", content="hello", is_important=False, user_id=jane.id)),
    ]
    return {"john": john, "jane": jane, "notes": notes}


@pytest.fixture
def settings(tmp_path):
    """Settings pointing the API at a throwaway SQLite file."""
    return Settings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'notes.db'}")


@pytest.fixture
def client(settings):
    """Fixture for FastAPI TestClient; the lifespan opens and closes the database."""
    app = create_app(settings)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def user_data():
    """Returns default user data for registration."""
    return {"username": "alice", "password": "alicepassword123"}


@pytest.fixture
def second_user_data():
    """Returns a second user's data."""
    return {"username": "bob", "password": "bobpassword456"}


@pytest.fixture
def user_id(client, user_data):
    r = client.post("/api/users", json=user_data)
    assert r.status_code == 201
    return r.json()["id"]
