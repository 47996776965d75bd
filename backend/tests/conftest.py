"""
Pytest configuration and fixtures.

This file is automatically discovered by pytest and provides
shared fixtures for all test modules.

Every test runs against a fresh in-memory SQLite database (aiosqlite +
StaticPool so all sessions share one connection). The embedding model and
the completion API are replaced by deterministic fakes.

References:
-----------
- Pytest Fixtures: https://docs.pytest.org/en/stable/fixture.html
- FastAPI Testing: https://fastapi.tiangolo.com/advanced/async-tests/
"""

import os

# Settings are read at import time, so the environment must be ready first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-at-least-32-characters")
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("LOG_FORMAT", "text")

from datetime import timedelta  # noqa: E402
from typing import AsyncGenerator  # noqa: E402
from unittest.mock import AsyncMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.exceptions import EmbeddingError  # noqa: E402
from app.core.rate_limit import RateLimiter  # noqa: E402
from app.core.security import ADMIN_ROLE, create_access_token  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.deps import get_db, get_db_override  # noqa: E402
from app.main import app  # noqa: E402


# ================================
# Fakes
# ================================

# Each vocabulary word is one embedding dimension
VOCABULARY = ("transfer", "yumurta", "beta", "ilaç")


class FakeEmbedder:
    """
    Bag-of-words embedder over VOCABULARY.

    Texts sharing vocabulary words are similar; texts with none of them
    get the zero vector and score 0 against everything.
    """

    is_initialized = True

    def __init__(self):
        self.calls: list[str] = []
        self.fail = False

    def vector(self, text: str) -> list[float]:
        lowered = text.lower()
        return [float(lowered.count(word)) for word in VOCABULARY]

    async def embed_text(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail:
            raise EmbeddingError("model unavailable")
        return self.vector(text)

    async def embed_texts_batch(self, texts: list[str]) -> list[list[float]]:
        if self.fail:
            raise EmbeddingError("model unavailable")
        return [self.vector(text) for text in texts]


class FakeCompletion:
    """Stands in for CompletionClient; records every prompt."""

    def __init__(self, reply: str = "Transfer sonrası dinlenmeniz önerilir."):
        self.complete = AsyncMock(return_value=reply)
        self.close = AsyncMock()


# ================================
# Database Fixtures
# ================================

@pytest_asyncio.fixture
async def test_engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ================================
# Service Fixtures
# ================================

@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def fake_completion() -> FakeCompletion:
    return FakeCompletion()


@pytest.fixture
def rate_limiter() -> RateLimiter:
    return RateLimiter(max_requests=10, window_seconds=60)


# ================================
# FastAPI Client Fixtures
# ================================

@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    fake_embedder: FakeEmbedder,
    fake_completion: FakeCompletion,
    rate_limiter: RateLimiter,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client against the app, without running its lifespan.

    Usage:
        async def test_something(client: AsyncClient):
            response = await client.get("/api/v1/suggestions")
            assert response.status_code == 200
    """
    app.dependency_overrides[get_db] = get_db_override(db_session)
    app.state.rate_limiter = rate_limiter
    app.state.embedder = fake_embedder
    app.state.completion_client = fake_completion
    app.state.analysis_queue = None

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ================================
# Authentication Fixtures
# ================================

@pytest.fixture
def admin_headers() -> dict[str, str]:
    token = create_access_token(
        data={"sub": "admin@clinic", "role": ADMIN_ROLE},
        expires_delta=timedelta(minutes=30),
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def staff_headers() -> dict[str, str]:
    """Valid token without the admin role."""
    token = create_access_token(data={"sub": "nurse@clinic", "role": "staff"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def expired_headers() -> dict[str, str]:
    token = create_access_token(
        data={"sub": "admin@clinic", "role": ADMIN_ROLE},
        expires_delta=timedelta(hours=-1),
    )
    return {"Authorization": f"Bearer {token}"}
