import os
import uuid
from collections.abc import AsyncGenerator, Iterator
from datetime import UTC, datetime, timedelta

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings
from app.models.base import Base

# Fixed user IDs (consistent across tests for predictable auth)
SELLER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
BUYER_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")
ADMIN_ID = uuid.UUID("00000000-0000-0000-0000-000000000003")

# Security: This is a test-only secret. Production uses a real secret from env.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105  # gitleaks:allow

TEST_CRON_SECRET = "test-cron-secret"  # nosec B105


def create_test_jwt(
    user_id: uuid.UUID = SELLER_ID,
    *,
    secret: str = TEST_AUTH_SECRET,
    expires_delta: timedelta | None = None,
    iat: datetime | None = None,
) -> str:
    """Create a signed JWT for test authentication.

    Args:
        user_id: User UUID to encode in the sub claim.
        secret: Signing secret (must match settings.auth_secret in tests).
        expires_delta: Time until expiration. Defaults to 1 hour.
        iat: Issued-at time. Defaults to now.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": str(user_id),
        "aud": settings.auth_audience,
        "iss": settings.auth_issuer,
        "exp": now + (expires_delta or timedelta(hours=1)),
        "iat": iat or now,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def _test_database_url(tmp_path) -> str:
    """TEST_DATABASE_URL when set, else a throwaway SQLite file."""
    return os.environ.get("TEST_DATABASE_URL") or (
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    )


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """Create test database engine with a fresh schema.

    SQLite runs in autocommit at the driver level with an explicit BEGIN
    so SAVEPOINTs (used by the sweeps and the webhook handler) work.
    """
    engine = create_async_engine(_test_database_url(tmp_path), echo=False)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine.sync_engine, "connect")
        def _on_connect(dbapi_connection, _record):
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

        @event.listens_for(engine.sync_engine, "begin")
        def _on_begin(conn):
            conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine.

    Use a fresh session to read back what an API call committed.
    """
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


# =============================================================================
# Users
# =============================================================================


async def _add_user(db: AsyncSession, **fields):
    from app.models import User

    user = User(**fields)
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def seller_user(db_session: AsyncSession):
    """Seller account (owner of the test listings)."""
    return await _add_user(
        db_session,
        id=SELLER_ID,
        email="seller@example.com",
        name="Sally Seller",
        role="seller",
        phone="555-0100",
        company="Short Line Supply",
    )


@pytest_asyncio.fixture
async def buyer_user(db_session: AsyncSession):
    """Buyer account."""
    return await _add_user(
        db_session,
        id=BUYER_ID,
        email="buyer@example.com",
        name="Bob Buyer",
        role="buyer",
    )


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession):
    """Admin account."""
    return await _add_user(
        db_session,
        id=ADMIN_ID,
        email="admin@example.com",
        name="Ada Admin",
        role="admin",
        is_admin=True,
    )


@pytest_asyncio.fixture
async def active_listing(db_session: AsyncSession, seller_user):
    """Active listing owned by the seller."""
    from app.repositories.listing_repository import ListingRepository

    listing = await ListingRepository.create(
        db_session,
        seller_id=seller_user.id,
        title="GP38-2 Locomotive",
        description="Rebuilt prime mover, low hours",
        category="locomotives",
        condition="rebuilt",
        status="active",
        price_cents=45_000_000,
        location_state="TX",
    )
    await db_session.commit()
    return listing


# =============================================================================
# API Clients
# =============================================================================


@pytest.fixture
def api_app(session_factory) -> Iterator:
    """FastAPI app wired to the test database and the test signing secret."""
    from app.core.database import get_db
    from app.main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_auth_secret = settings.auth_secret
    settings.auth_secret = SecretStr(TEST_AUTH_SECRET)

    yield app

    settings.auth_secret = original_auth_secret
    app.dependency_overrides.clear()


def _client_for(app, user_id: uuid.UUID | None) -> AsyncClient:
    cookies = {settings.auth_cookie_name: create_test_jwt(user_id)} if user_id else None
    return AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies=cookies,
    )


@pytest_asyncio.fixture
async def client(api_app, seller_user) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client authenticated as the seller."""
    async with _client_for(api_app, seller_user.id) as ac:
        yield ac


@pytest_asyncio.fixture
async def buyer_client(api_app, buyer_user) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client authenticated as the buyer."""
    async with _client_for(api_app, buyer_user.id) as ac:
        yield ac


@pytest_asyncio.fixture
async def admin_client(api_app, admin_user) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client authenticated as the admin."""
    async with _client_for(api_app, admin_user.id) as ac:
        yield ac


@pytest_asyncio.fixture
async def unauthenticated_client(api_app) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client without a session cookie (auth still enabled)."""
    async with _client_for(api_app, None) as ac:
        yield ac


@pytest.fixture
def cron_secret() -> Iterator[str]:
    """Configure CRON_SECRET and return the matching bearer header value."""
    original = settings.cron_secret
    settings.cron_secret = SecretStr(TEST_CRON_SECRET)
    yield f"Bearer {TEST_CRON_SECRET}"
    settings.cron_secret = original


# =============================================================================
# Autouse Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Iterator[None]:
    """Disable rate limiting during tests.

    Rate limiting is tested separately; disable for other tests to avoid
    flaky failures from rate limit triggers.
    """
    from app.core.rate_limiting import limiter

    original_enabled = limiter.enabled
    limiter.enabled = False
    yield
    limiter.enabled = original_enabled


@pytest.fixture(autouse=True)
def reset_singletons() -> Iterator[None]:
    """Reset the image URL cache and storage singletons between tests."""
    from app.services.presigned_url_cache import reset_url_cache
    from app.services.storage_service import reset_storage

    reset_url_cache()
    reset_storage()
    yield
    reset_url_cache()
    reset_storage()
