"""Shared pytest fixtures for backend tests."""

import json
from pathlib import Path
from unittest.mock import patch, MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from quizboard.config import settings
from quizboard.core.security import create_session_token
from quizboard.db.session import Base, get_db
from quizboard.db import models  # noqa: F401
from quizboard.main import app
from quizboard.services.quiz_content import QuizContentProvider, get_quiz_provider


# Use an in-memory SQLite database for testing with static pool
SQLALCHEMY_TEST_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_TEST_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,  # Use StaticPool to keep connection alive
    echo=False,
)
TestSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)


# ── Quiz content ──────────────────────────────────────────────────────────────


def make_quiz(quiz_id: str, n_questions: int, title: str | None = None) -> dict:
    """Quiz JSON as stored on disk. Option 'b' is always correct."""
    return {
        "id": quiz_id,
        "title": title or f"Quiz {quiz_id}",
        "description": f"Test quiz {quiz_id}",
        "metadata": {"difficulty": "beginner", "estimatedMinutes": 5, "tags": ["test"]},
        "questions": [
            {
                "id": f"q{i}",
                "text": f"Question {i}?",
                "options": [
                    {"id": "a", "text": "Wrong"},
                    {"id": "b", "text": "Right"},
                    {"id": "c", "text": "Also wrong"},
                ],
                "correctOptionId": "b",
                "explanation": f"Explanation {i}",
                "conceptExplanation": f"Concept {i}",
            }
            for i in range(1, n_questions + 1)
        ],
        "createdAt": "2024-01-01T00:00:00Z",
        "updatedAt": "2024-01-02T00:00:00Z",
    }


def write_quiz(directory: Path, quiz: dict) -> Path:
    path = directory / f"{quiz['id']}.json"
    path.write_text(json.dumps(quiz), encoding="utf-8")
    return path


@pytest.fixture
def quiz_dir(tmp_path: Path) -> Path:
    """Directory holding quiz-1 (5 questions) and quiz-2 (10 questions)."""
    directory = tmp_path / "quizzes"
    directory.mkdir()
    write_quiz(directory, make_quiz("quiz-1", 5, title="First Quiz"))
    write_quiz(directory, make_quiz("quiz-2", 10, title="Second Quiz"))
    return directory


@pytest.fixture
def provider(quiz_dir: Path) -> QuizContentProvider:
    return QuizContentProvider(quiz_dir, ttl_seconds=60)


# ── Ambient ───────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def no_redis_cache(monkeypatch):
    """Keep leaderboard caching off so no test needs Redis."""
    monkeypatch.setattr(settings, "CACHE_ENABLED", False)


@pytest.fixture(autouse=True)
def mock_celery_tasks():
    """Mock Celery tasks for all tests to prevent Redis connection."""
    mock_task = MagicMock(return_value=MagicMock(id="fake-task-id"))
    mock_task.delay = MagicMock(return_value=MagicMock(id="fake-task-id"))

    # Patch at the import points in the route modules
    with patch("quizboard.api.attempts.refresh_leaderboards", mock_task), \
         patch("quizboard.api.leaderboard.refresh_leaderboards", mock_task):
        yield mock_task


@pytest.fixture(scope="function")
def db():
    """Get a fresh DB (empty tables) and session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestSession()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session, provider: QuizContentProvider):
    """FastAPI test client with overridden DB and quiz content dependencies."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_quiz_provider] = lambda: provider

    # Remove TrustedHostMiddleware for tests to allow 'testserver' host
    app.user_middleware = [m for m in app.user_middleware if "TrustedHost" not in str(m)]

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth(username: str = "alice") -> dict:
    """Authorization header carrying a session credential for *username*."""
    return {"Authorization": f"Bearer {create_session_token(username)}"}


@pytest.fixture
def auth_header():
    return auth


@pytest.fixture
def quiz_json():
    return make_quiz


@pytest.fixture
def memory_cache(monkeypatch):
    """Leaderboard snapshot cache backed by a plain dict instead of Redis."""
    store: dict = {}

    def _key(prefix, params):
        return (prefix, json.dumps(params, sort_keys=True))

    def _get(prefix, params):
        return store.get(_key(prefix, params))

    def _set(prefix, params, payload, ttl=None):
        store[_key(prefix, params)] = payload

    def _delete(prefix, params):
        store.pop(_key(prefix, params), None)

    monkeypatch.setattr("quizboard.services.leaderboard.cache_get", _get)
    monkeypatch.setattr("quizboard.services.leaderboard.cache_set", _set)
    monkeypatch.setattr("quizboard.services.leaderboard.cache_delete", _delete)
    return store
