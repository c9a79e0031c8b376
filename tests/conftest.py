"""Pytest configuration and shared fixtures."""

import os
import tempfile
import time
from pathlib import Path
from typing import Dict, List

# Settings are read at import time, so the environment is prepared first
_TEST_DIR = Path(tempfile.mkdtemp(prefix="chatline-tests-"))

os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR / 'chatline_test.db'}"
os.environ["JWT_SECRET"] = "test_secret_key_12345"
os.environ["FRONTEND_URL"] = "http://frontend.test"
os.environ["API_URL"] = "http://api.test"
os.environ["GOOGLE_CLIENT_ID"] = "google-client-id"
os.environ["GOOGLE_CLIENT_SECRET"] = "google-client-secret"
os.environ["FACEBOOK_APP_ID"] = ""
os.environ["FACEBOOK_APP_SECRET"] = ""
os.environ["AWS_S3_BUCKET_NAME"] = ""
os.environ["CLOUDFRONT_DOMAIN"] = ""

import pytest
from httpx import ASGITransport, AsyncClient

from chatline import tasks
from chatline.database import Base, async_session_maker, engine
from chatline.dependencies import get_storage_dep
from chatline.server import app


# ============================================================================
# Fakes
# ============================================================================

class FakeStorage:
    """In-memory stand-in for S3Storage."""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.deleted: List[str] = []

    def public_url(self, key: str) -> str:
        return f"https://cdn.test/{key}"

    async def agenerate_presigned_put(self, key: str, content_type: str, expires_in: int) -> str:
        return f"https://bucket.test/{key}?X-Amz-Expires={expires_in}"

    async def aput_object(self, key: str, body: bytes, content_type: str) -> None:
        self.objects[key] = body

    async def adelete_objects(self, keys) -> List[str]:
        for key in keys:
            self.objects.pop(key, None)
            self.deleted.append(key)
        return []


class TestUser:
    """A registered user and the headers to act as them."""

    __test__ = False

    def __init__(self, id: str, name: str, email: str, token: str):
        self.id = id
        self.name = name
        self.email = email
        self.token = token
        self.headers = {"Authorization": f"Bearer {token}"}


# ============================================================================
# Database and app
# ============================================================================

@pytest.fixture
async def db():
    """Fresh tables for every test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


@pytest.fixture
async def session(db):
    """Database session for service and repository tests."""
    async with async_session_maker() as s:
        yield s


@pytest.fixture
def storage():
    """Fake object store wired into the app."""
    fake = FakeStorage()
    app.dependency_overrides[get_storage_dep] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_storage_dep, None)


@pytest.fixture(autouse=True)
def scheduled_deletions(monkeypatch):
    """Capture keys handed to the deletion task instead of enqueueing them."""
    keys: List[str] = []
    monkeypatch.setattr(tasks, "schedule_object_deletion", lambda k: keys.extend(k))
    return keys


@pytest.fixture
async def client(db):
    """Create an async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ============================================================================
# Users
# ============================================================================

async def register_and_login(client: AsyncClient, name: str, password: str = "testpassword123") -> TestUser:
    """Register a local account and sign in as it."""
    email = f"{name.lower()}_{time.time_ns()}@example.com"

    response = await client.post(
        "/api/register",
        json={"name": name, "email": email, "password": password},
    )
    assert response.status_code == 201, response.text

    response = await client.post(
        "/api/login",
        json={"email": email, "password": password},
    )
    assert response.status_code == 200, response.text
    data = response.json()
    return TestUser(data["user"]["id"], name, email, data["access_token"])


@pytest.fixture
async def alice(client) -> TestUser:
    return await register_and_login(client, "Alice")


@pytest.fixture
async def bob(client) -> TestUser:
    return await register_and_login(client, "Bob")


@pytest.fixture
async def carol(client) -> TestUser:
    return await register_and_login(client, "Carol")


async def create_group(client: AsyncClient, admin: TestUser, *members: TestUser, name: str = "Team") -> dict:
    response = await client.post(
        "/api/chats",
        json={
            "chat_type": "group",
            "participant_ids": [m.id for m in members],
            "group_name": name,
        },
        headers=admin.headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def create_private(client: AsyncClient, user: TestUser, other: TestUser) -> dict:
    response = await client.post(
        "/api/chats",
        json={"chat_type": "private", "participant_ids": [other.id]},
        headers=user.headers,
    )
    assert response.status_code in (200, 201), response.text
    return response.json()


async def send_text(client: AsyncClient, user: TestUser, chat_id: str, content: str) -> dict:
    response = await client.post(
        f"/api/chats/{chat_id}/messages",
        json={"type": "text", "content": content},
        headers=user.headers,
    )
    assert response.status_code == 201, response.text
    return response.json()
