"""Test configuration and fixtures.

Provides isolated test fixtures for:
- A temporary SQLite database per test
- Services wired with a fake clock and a mocked LLM
- HTTP client against the app with services on app.state
- Identities and bearer tokens
"""

from collections.abc import AsyncGenerator
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from gestor.core.config import Settings
from gestor.core.security import Identity, create_identity_token
from gestor.db.models import Base
from gestor.db.store import DocumentStore
from gestor.main import app
from gestor.services.container import AppServices, build_services
from gestor.services.dispatcher import IntentDispatcher
from gestor.services.handlers import build_dispatcher
from gestor.services.llm import Completion, LLMService

USER_UID = "user-1"
USER_EMAIL = "ana@confeitaria.com"
ADMIN_UID = "admin-1"
ADMIN_EMAIL = "admin@confeitaria.com"


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# Settings
# =============================================================================

@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Create test settings with safe defaults."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        jwt_secret_key="test-secret-key-for-testing-only-min-32-chars",
        debug=True,
        upstash_redis_rest_url="",
        upstash_redis_rest_token="",
        super_admin_uid=ADMIN_UID,
        ADMIN_EMAILS=ADMIN_EMAIL,
        metrics_buffer_size=100,
    )


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def test_engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    """Create a test database engine with a fresh schema for each test."""
    engine = create_async_engine(test_settings.processed_database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
def store(session_factory: async_sessionmaker[AsyncSession]) -> DocumentStore:
    return DocumentStore(session_factory)


# =============================================================================
# Service Fixtures
# =============================================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mock_llm() -> MagicMock:
    """LLM service answering every prompt with a canned analysis."""
    llm = MagicMock(spec=LLMService)
    llm.generate_text = AsyncMock(
        return_value=Completion(
            text="Seus custos com ingredientes estão altos.",
            model="gemini-2.5-flash",
            provider="gemini",
        )
    )
    return llm


@pytest.fixture
def services(
    test_settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    clock: FakeClock,
    mock_llm: MagicMock,
) -> AppServices:
    return build_services(
        test_settings,
        session_factory=session_factory,
        clock=clock,
        llm=mock_llm,
    )


@pytest.fixture
def dispatcher(services: AppServices) -> IntentDispatcher:
    return build_dispatcher(services)


# =============================================================================
# HTTP Client Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def client(
    services: AppServices,
    dispatcher: IntentDispatcher,
) -> AsyncGenerator[AsyncClient, None]:
    """Async test client; the lifespan is skipped, services are injected."""
    app.state.services = services
    app.state.dispatcher = dispatcher

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    await services.metrics.flush_all()


# =============================================================================
# Identity Fixtures
# =============================================================================

@pytest.fixture
def user() -> Identity:
    return Identity(uid=USER_UID, claims={"email": USER_EMAIL})


@pytest.fixture
def admin() -> Identity:
    return Identity(uid=ADMIN_UID, claims={"email": ADMIN_EMAIL})


@pytest.fixture
def auth_headers() -> dict[str, str]:
    token = create_identity_token(USER_UID, {"email": USER_EMAIL})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers() -> dict[str, str]:
    token = create_identity_token(ADMIN_UID, {"email": ADMIN_EMAIL})
    return {"Authorization": f"Bearer {token}"}
