from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from pathlib import Path
import sys
import time
from typing import Any, Dict, Optional

import jwt
import pytest
import pytest_asyncio
from httpx import AsyncClient
from mongomock_motor import AsyncMongoMockClient

SERVICE_ROOT = Path(__file__).resolve().parents[1]
if str(SERVICE_ROOT) not in sys.path:
    sys.path.insert(0, str(SERVICE_ROOT))

from match_engine.main import app
from match_engine.db import close_mongo_connection, connect_to_mongo, get_db
from match_engine.config import get_settings
from match_engine.models.user import UserDocument
from match_engine.repositories.user import UserRepository

TEST_JWT_SECRET = "test-secret"


@pytest.fixture(autouse=True)
def _env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MONGO_URI", "mongodb://localhost:27017/test")
    monkeypatch.setenv("MONGO_DB_NAME", "match-engine-test")
    monkeypatch.setenv("JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setenv("REDIS_PUBSUB_ENABLED", "false")
    monkeypatch.delenv("DISCOVERY_SYMMETRIC", raising=False)
    get_settings.cache_clear()  # type: ignore[attr-defined]


@pytest_asyncio.fixture
async def mongo_client(monkeypatch: pytest.MonkeyPatch) -> AsyncIterator[AsyncMongoMockClient]:
    client = AsyncMongoMockClient()

    def _client_factory(*_args, **_kwargs) -> AsyncMongoMockClient:
        return client

    monkeypatch.setattr("match_engine.db.AsyncIOMotorClient", _client_factory)
    yield client
    client.close()


@pytest_asyncio.fixture
async def db(mongo_client: AsyncMongoMockClient):
    await connect_to_mongo()
    yield get_db()
    await close_mongo_connection()


@pytest_asyncio.fixture
async def api_client(db) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(app=app, base_url="http://testserver") as client:
        yield client


@pytest.fixture
def auth_headers() -> Callable[[str], Dict[str, str]]:
    def _headers(user_id: str) -> Dict[str, str]:
        now = int(time.time())
        token = jwt.encode({"sub": user_id, "iat": now, "exp": now + 3600}, TEST_JWT_SECRET, algorithm="HS256")
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def make_user(db) -> Callable[..., Awaitable[UserDocument]]:
    """Persist a discoverable user; defaults put everyone in downtown Berlin."""

    repo = UserRepository(db)

    async def _make(
        user_id: str,
        *,
        age: int = 27,
        gender: str = "female",
        lat: Optional[float] = 52.5200,
        lon: Optional[float] = 13.4050,
        show_me: str = "everyone",
        age_range: tuple = (18, 40),
        max_distance_km: float = 50,
        **extra: Any,
    ) -> UserDocument:
        payload: Dict[str, Any] = {
            "userId": user_id,
            "name": user_id.title(),
            "age": age,
            "gender": gender,
            "preferences": {
                "ageRange": {"min": age_range[0], "max": age_range[1]},
                "maxDistance": max_distance_km,
                "showMe": show_me,
            },
            **extra,
        }
        if lat is not None and lon is not None:
            payload["location"] = {"lat": lat, "lon": lon}
        return await repo.save(UserDocument(**payload), now_ms=int(time.time() * 1000))

    return _make
