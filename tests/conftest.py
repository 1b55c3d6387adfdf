# tests/conftest.py

import os
import tempfile
from pathlib import Path

# Settings are read once at import time
os.environ.setdefault("BACKEND_URL", "https://backend.test")
os.environ.setdefault("BACKEND_API_KEY", "test-api-key")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("BACKEND_RETRY_BACKOFF", "0")
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{Path(tempfile.mkdtemp()) / 'scrumboard-test.db'}",
)

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from scrumboard.api.deps import get_backend, get_chat_feed, get_db
from scrumboard.config import settings as app_settings
from scrumboard.context import AppContext
from scrumboard.database import Base
from scrumboard.database.repositories.client_session import ClientSessionRepository
from scrumboard.main import app

from .fakes import FakeBackend, FakeFeed, seed_project


@pytest.fixture()
def backend() -> FakeBackend:
    """In-memory backend with one project, its owner and one team member."""
    fake = FakeBackend()
    seed_project(fake)
    return fake


@pytest.fixture()
def session_factory(tmp_path: Path):
    """
    Session store on a fresh SQLite file.

    Tables are created through a synchronous engine so that the async engine
    can be used from any event loop (NullPool opens a connection per session).
    """
    path = tmp_path / "sessions.db"
    sync_engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()

    engine = create_async_engine(f"sqlite+aiosqlite:///{path}", poolclass=NullPool)
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture()
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def ctx(db, backend) -> AppContext:
    """Context of a logged-in project owner."""
    sessions = ClientSessionRepository(db)
    client_session = await sessions.create(
        user_id="u-owner", username="olivia", email="olivia@example.com", theme="dark"
    )
    return AppContext(
        settings=app_settings, backend=backend, sessions=sessions, session=client_session
    )


@pytest.fixture()
def feed(backend) -> FakeFeed:
    return FakeFeed(backend=backend)


@pytest.fixture()
def client(session_factory, backend, feed):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_backend] = lambda: backend
    app.dependency_overrides[get_chat_feed] = lambda: feed
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def login(client: TestClient, who: str = "olivia", password: str = "secret123") -> dict:
    response = client.post(
        "/api/v1/auth/login", json={"email_or_username": who, "password": password}
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture()
def owner_headers(client) -> dict:
    return login(client)


@pytest.fixture()
def member_headers(client) -> dict:
    return login(client, "marco")
