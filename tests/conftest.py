"""Shared pytest fixtures.

Fixtures included:
- Stores: mem_store, mongo_store, sql_store, and ``store`` parametrized over all three
- Backends: mongo_db (mongomock), sql_engine (in-memory SQLite)
- Sample input: quote_data, tip_data, video_data, audio_data, challenge_data, challenge_input
- HTTP: client (FastAPI TestClient over a seeded in-memory store)
"""

import mongomock
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from config import Settings
from main import create_app
from mem_storage import MemStorage
from mongo_storage import MongoStorage
from sql_storage import SqlStorage
from storage import AppContext

# =============================================================================
# Backends
# =============================================================================


@pytest.fixture
def mongo_db():
    """A throwaway mongomock database."""
    return mongomock.MongoClient()["soulelevate_test"]


@pytest.fixture
def sql_engine():
    """In-memory SQLite shared by every connection of the pool."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()


# =============================================================================
# Stores
# =============================================================================


@pytest.fixture
def mem_store() -> MemStorage:
    return MemStorage(seed=False)


@pytest.fixture
def mongo_store(mongo_db) -> MongoStorage:
    return MongoStorage(mongo_db)


@pytest.fixture
def sql_store(sql_engine) -> SqlStorage:
    return SqlStorage(sql_engine)


@pytest.fixture(params=["mem", "mongo", "sql"])
def store(request):
    """Every store, so behaviour shared by all of them is tested once."""
    return request.getfixturevalue(f"{request.param}_store")


# =============================================================================
# Sample input
# =============================================================================


@pytest.fixture
def quote_data() -> dict:
    return {"text": "Well begun is half done.", "author": "Aristotle"}


@pytest.fixture
def tip_data() -> dict:
    return {"title": "Single tasking", "content": "Do one thing at a time.", "category": "Productivity"}


@pytest.fixture
def video_data() -> dict:
    return {
        "title": "Breathing basics",
        "description": "Slow down in four counts.",
        "type": "video",
        "url": "https://example.com/video/breathing",
        "duration": "4:05",
        "duration_seconds": 245,
        "thumbnail": "https://example.com/thumb.jpg",
        "category": "Mindfulness",
    }


@pytest.fixture
def audio_data() -> dict:
    return {
        "title": "Body scan",
        "description": "Evening practice",
        "type": "audio",
        "url": "https://example.com/audio/body-scan.mp3",
        "duration": "12:00",
        "duration_seconds": 720,
        "category": "Sleep",
    }


@pytest.fixture
def challenge_data() -> dict:
    return {
        "title": "Hydration week",
        "description": "Build a water habit.",
        "category": "Health",
        "difficulty": "Easy",
        "duration": 7,
        "steps": ["Buy a bottle", "Drink a glass on waking", "Refill at lunch"],
    }


@pytest.fixture
def challenge_input() -> dict:
    return {
        "interests": ["writing", "running"],
        "goals": ["Finish a Novel"],
        "difficulty": "Hard",
        "duration": 5,
        "category": "Productivity",
    }


# =============================================================================
# HTTP
# =============================================================================


@pytest.fixture
def app_context() -> AppContext:
    return AppContext(settings=Settings(), storage=MemStorage(seed=True))


@pytest.fixture
def client(app_context):
    with TestClient(create_app(app_context)) as test_client:
        yield test_client
