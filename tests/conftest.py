"""Pytest configuration and fixtures."""

import os
from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock, patch

# Set test environment before importing app
os.environ["ENVIRONMENT"] = "test"

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import magiclink.models  # noqa: F401
from magiclink.config import settings
from magiclink.database import get_session
from magiclink.main import create_app
from magiclink.models import User
from magiclink.services.magic_link import (
    MagicLink,
    MagicLinkData,
    MagicLinkOptions,
    RequestContext,
)
from magiclink.services.store import SQLIdentityStore

TEST_BASE_URL = "http://test"


class Outbox:
    """Delivery callback that records links instead of emailing them."""

    def __init__(self) -> None:
        self.sent: list[MagicLinkData] = []
        self.contexts: list[RequestContext | None] = []
        self.fail = False

    async def send(self, data: MagicLinkData, context: RequestContext | None = None) -> None:
        if self.fail:
            raise ConnectionError("SMTP server unavailable")
        self.sent.append(data)
        self.contexts.append(context)

    @property
    def last(self) -> MagicLinkData:
        return self.sent[-1]


def make_magic_link(outbox: Outbox, **options) -> MagicLink:
    """Build a plugin that delivers into ``outbox``."""
    return MagicLink(
        MagicLinkOptions(send_magic_link=outbox.send, **options),
        base_url=TEST_BASE_URL,
        base_path=settings.base_path,
    )


@pytest.fixture(autouse=True)
def mock_queue():
    """Mock the SAQ queue to avoid Redis connections in tests."""
    mock_job = MagicMock()
    mock_job.id = "test-job-id"

    with patch("magiclink.tasks.queue.queue.enqueue", new_callable=AsyncMock) as mock_enqueue:
        mock_enqueue.return_value = mock_job
        yield mock_enqueue


@pytest.fixture
async def test_engine():
    """Create a fresh in-memory database per test."""
    engine = create_async_engine(
        settings.database_url_test,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session_factory() as session:
        yield session


@pytest.fixture
def store(session: AsyncSession) -> SQLIdentityStore:
    """Identity store over the test session."""
    return SQLIdentityStore(session)


@pytest.fixture
def outbox() -> Outbox:
    return Outbox()


@pytest.fixture
def magic_link(outbox: Outbox) -> MagicLink:
    """Default plugin: sign-up enabled, default expiry and rate limit."""
    return make_magic_link(outbox)


@pytest.fixture
def app(magic_link: MagicLink, session: AsyncSession) -> FastAPI:
    """Application with the test plugin registered and the test database."""
    app = create_app(magic_link)

    async def override_get_session():
        yield session

    app.dependency_overrides[get_session] = override_get_session
    return app


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client. Redirects are not followed."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url=TEST_BASE_URL,
    ) as ac:
        yield ac


@pytest.fixture
async def user(store: SQLIdentityStore) -> User:
    """Create a test user."""
    user = await store.create_user(email="test@example.com", name="Test User", email_verified=True)
    assert user is not None
    return user
