"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from rocket.auth.jwt import create_access_token
from rocket.config import get_settings
from rocket.dependencies import get_dispatcher, get_store
from rocket.events.dispatcher import EventDispatcher
from rocket.main import create_app
from tests.fakes import FakeStore, RecordingRedis

TEST_USER_ID = "user-1"


def auth_headers(user_id: str = TEST_USER_ID) -> dict[str, str]:
    """Bearer header for a token issued to `user_id`."""
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
def store() -> FakeStore:
    """Empty store with the seed activity catalog."""
    return FakeStore()


@pytest.fixture
def redis_recorder() -> RecordingRedis:
    return RecordingRedis()


@pytest_asyncio.fixture
async def client(store: FakeStore, redis_recorder: RecordingRedis) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with the in-memory store and a recording publisher."""
    app = create_app()

    async def _store_override() -> AsyncGenerator[FakeStore, None]:
        yield store

    app.dependency_overrides[get_store] = _store_override
    app.dependency_overrides[get_dispatcher] = lambda: EventDispatcher(
        redis_recorder, get_settings().events_channel
    )

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient) -> AsyncClient:
    """Client authenticated as TEST_USER_ID."""
    client.headers.update(auth_headers())
    return client
