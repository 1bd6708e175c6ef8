from __future__ import annotations

import os
import time
from collections.abc import Callable, Generator
from datetime import UTC, datetime
from pathlib import Path

import fakeredis
import jwt
import pytest

TEST_JWT_SECRET = "test-secret-for-bride-buddy-tests-0123456789"


@pytest.fixture(scope="session", autouse=True)
def _load_dotenv_for_tests() -> None:
    """Load repo .env for local runs (PyCharm/CLI).

    In CI, we *don't* auto-load `.env` by default so a developer's real API keys
    can never leak into a test run. Opt in with BRIDE_BUDDY_LOAD_DOTENV_FOR_TESTS=1.
    """

    if os.environ.get("CI") and os.environ.get("BRIDE_BUDDY_LOAD_DOTENV_FOR_TESTS") != "1":
        return

    env_path = Path(__file__).resolve().parents[1] / ".env"
    if env_path.exists():
        from dotenv import load_dotenv

        load_dotenv(dotenv_path=env_path, override=False)


@pytest.fixture(autouse=True)
def _auth_and_llm_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Pin the token secret and keep every test away from the real completion API."""

    monkeypatch.setenv("SUPABASE_JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setenv("SUPABASE_JWT_AUDIENCE", "authenticated")
    monkeypatch.setenv("OPENAI_BASE_URL", "http://llm.test/v1")
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")


@pytest.fixture()
def r() -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture()
def make_token() -> Callable[..., str]:
    def _make(user_id: str = "user-1", *, full_name: str = "Emma", expires_in: int = 3600, **extra: object) -> str:
        now = int(time.time())
        payload: dict[str, object] = {
            "sub": user_id,
            "aud": "authenticated",
            "email": f"{user_id}@example.com",
            "iat": now,
            "exp": now + expires_in,
            "user_metadata": {"full_name": full_name},
        }
        payload.update(extra)
        return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")

    return _make


@pytest.fixture()
def fixed_now(monkeypatch: pytest.MonkeyPatch) -> datetime:
    """Freeze the turn clock at a known instant."""

    now = datetime(2025, 3, 10, 15, 30, tzinfo=UTC)
    import bride_buddy.turn_processing.turns as turns

    monkeypatch.setattr(turns, "_now", lambda: now)
    return now


@pytest.fixture()
def client_and_redis():
    """FastAPI TestClient wired to a fakeredis instance."""

    from fastapi.testclient import TestClient

    from bride_buddy.api.deps import get_redis
    from bride_buddy.main import app

    fake = fakeredis.FakeRedis(decode_responses=True)

    def _override() -> Generator[fakeredis.FakeRedis, None, None]:
        yield fake

    app.dependency_overrides[get_redis] = _override
    with TestClient(app) as c:
        yield c, fake
    app.dependency_overrides.clear()
