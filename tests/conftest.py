"""Pytest configuration and fixtures."""

import os
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from recipe_suggest.api.dependencies import get_llm_service
from recipe_suggest.database import Base, get_db
from recipe_suggest.main import app
from recipe_suggest.models.enums import EntrySource
from recipe_suggest.services.auth import create_access_token
from recipe_suggest.services.dictionary_store import DictionaryStore


class AuthHeaders(dict):
    """Dict subclass that also stores user_id."""

    def __init__(self, *args, user_id: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_id = user_id


# Use test database - PostgreSQL in Docker, SQLite locally
if os.getenv("DATABASE_URL"):
    # Running in Docker - use PostgreSQL test database
    SQLALCHEMY_DATABASE_URL = os.getenv("DATABASE_URL").replace(
        "/recipe_suggest", "/recipe_suggest_test"
    )
else:
    # Running locally - use SQLite
    SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

connect_args = {"check_same_thread": False} if "sqlite" in SQLALCHEMY_DATABASE_URL else {}
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    if "postgresql" in SQLALCHEMY_DATABASE_URL:
        from sqlalchemy_utils import create_database, database_exists

        if not database_exists(SQLALCHEMY_DATABASE_URL):
            create_database(SQLALCHEMY_DATABASE_URL)

    from recipe_suggest import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = TestingSessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture(autouse=True)
def usage_bumps():
    """Capture learned-cache usage bumps instead of sending them to the broker."""
    with patch("recipe_suggest.tasks.translation.record_translation_usage.delay") as mock_delay:
        yield mock_delay


@pytest.fixture
def mock_llm():
    """LLM service double. Tests set ``generate`` / ``generate_json`` return values."""
    llm = AsyncMock()
    llm.generate.return_value = "INVALID"
    llm.generate_json.return_value = {"calories": 0, "protein": 0, "carbs": 0, "fat": 0, "fiber": 0}
    return llm


@pytest.fixture(scope="function")
def client(db, mock_llm):
    """Create a test client with database and LLM overrides."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_llm_service] = lambda: mock_llm
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_auth_headers(user_id: str) -> AuthHeaders:
    token = create_access_token(user_id)
    return AuthHeaders({"Authorization": f"Bearer {token}"}, user_id=user_id)


@pytest.fixture
def auth_headers():
    """Auth headers for a test user."""
    return make_auth_headers("user-1")


@pytest.fixture
def other_auth_headers():
    """Auth headers for a second user."""
    return make_auth_headers("user-2")


@pytest.fixture
def seeded_dictionary(db):
    """A few curated Vietnamese ingredients."""
    store = DictionaryStore(db)
    entries = [
        ("Thịt gà", "chicken", "meat", {"calories": 165, "protein": 31, "carbs": 0, "fat": 3.6}),
        ("Hành lá", "scallion", "vegetable", {"calories": 32, "protein": 1.8, "carbs": 7.3}),
        ("Tỏi", "garlic", "spice", {"calories": 149, "protein": 6.4, "carbs": 33, "fat": 0.5}),
        ("Nước mắm", "fish-sauce", "sauce", {"calories": 35, "protein": 5.1, "carbs": 3.6}),
    ]
    for source, english, category, nutrition in entries:
        store.add(
            source_text=source,
            canonical_english=english,
            category=category,
            nutrition_per_100g=nutrition,
            added_by=EntrySource.BOOTSTRAP,
        )
    return store
