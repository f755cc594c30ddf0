"""Tests for session credential encoding and the auth dependency."""

from datetime import datetime, timezone

from jose import jwt

from quizboard.config import settings
from quizboard.core.security import create_session_token, decode_session_token


def test_round_trip():
    login = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    session = decode_session_token(create_session_token("alice", login))
    assert session is not None
    assert session.username == "alice"
    assert session.login_time == login


def test_tampered_token_rejected():
    token = create_session_token("alice")
    assert decode_session_token(token[:-2] + "xx") is None


def test_wrong_key_rejected():
    token = jwt.encode({"sub": "alice", "loginTime": "2024-01-01T00:00:00Z"}, "other-key", algorithm="HS256")
    assert decode_session_token(token) is None


def test_missing_username_rejected():
    token = jwt.encode({"loginTime": "2024-01-01T00:00:00Z"}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    assert decode_session_token(token) is None


def test_routes_require_session(client):
    assert client.get("/api/attempts").status_code == 401
    resp = client.get("/api/attempts", headers={"Authorization": "Bearer not-a-token"})
    assert resp.status_code == 401


def test_public_routes_open(client):
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/api/quizzes").status_code == 200
    assert client.get("/api/leaderboard").status_code == 200
