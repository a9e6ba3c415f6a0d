"""Shared fixtures for the review service tests.

Environment is set before ``review_service`` is imported: a fixed signing
key and cheap Argon2 parameters so hashing does not dominate the test run.
Every test gets its own SQLite database file.
"""

import os

os.environ["APP_ENV"] = "test"
os.environ["SECRET_KEY"] = "test-secret-key-for-review-service"
os.environ["ARGON2_TIME_COST"] = "1"
os.environ["ARGON2_MEMORY_COST"] = "1024"
os.environ["ARGON2_PARALLELISM"] = "1"
os.environ.pop("DATABASE_URL", None)

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from review_service.app import create_app
from review_service.database import Database

ALICE = {"username": "alice", "email": "alice@x.com", "password": "secret1"}


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'reviews.db'}"


@pytest.fixture
def app(database_url):
    return create_app(Database(database_url, init_attempts=1, retry_delay=0))


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def degraded_client():
    """Client for an app started without any store configured."""
    app = create_app(Database(None, init_attempts=1, retry_delay=0))
    with TestClient(app) as test_client:
        yield test_client


@pytest_asyncio.fixture
async def database(database_url):
    db = Database(database_url, init_attempts=1, retry_delay=0)
    await db.initialize()
    yield db
    await db.dispose()


def register(client: TestClient, **overrides):
    payload = {**ALICE, **overrides}
    return client.post("/api/register", json=payload)


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice_token(client) -> str:
    response = register(client)
    assert response.status_code == 201, response.text
    return response.json()["token"]
