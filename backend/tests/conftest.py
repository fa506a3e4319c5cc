"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from stacks.config import Settings
from stacks.context import AppContext
from stacks.db.session import build_session_factory
from stacks.main import create_app
from stacks.models import Base, Deal, Merchant, User
from stacks.services.auth_service import CredentialService
from stacks.services.cache_service import CacheService
from stacks.services.upload_service import UploadSigner

TEST_PASSWORD = "correct-horse-battery"
BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def anyio_backend():
    """Use asyncio as the async backend for tests."""
    return "asyncio"


# ============================================================================
# DATABASE
# ============================================================================

@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        CACHE_ENABLED=False,
        ENVIRONMENT="test",
        DEBUG=False,
        JWT_SECRET_KEY="test-secret-key",
        S3_BUCKET_NAME="stacks-test-bucket",
    )


@pytest_asyncio.fixture
async def test_engine():
    """In-memory SQLite engine with every table created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def test_db(test_engine):
    """Create an in-memory SQLite database session for testing."""
    SessionLocal = build_session_factory(test_engine)

    async with SessionLocal() as session:
        yield session


@pytest.fixture
def credentials(test_settings: Settings) -> CredentialService:
    return CredentialService(test_settings)


# ============================================================================
# SAMPLE DATA
# ============================================================================

async def make_user(
    db: AsyncSession,
    email: str,
    is_merchant: bool = False,
    password: str = TEST_PASSWORD,
) -> User:
    user = User(
        email=email,
        hashed_password=CredentialService.hash_password(password),
        first_name="Test",
        last_name="User",
        is_merchant=is_merchant,
        deal_links=[],
    )
    db.add(user)
    await db.commit()
    return user


async def make_merchant(
    db: AsyncSession,
    owner: User,
    name: str = "Corner Bakery",
    category: str = "food",
    lat: float = 5.0,
    lng: float = 5.0,
) -> Merchant:
    merchant = Merchant(
        user_id=owner.id,
        name=name,
        category=category,
        logo_url="https://example.com/logo.png",
        address="1 Test Street",
        phone="555-0100",
        lat=lat,
        lng=lng,
    )
    db.add(merchant)
    await db.commit()
    return merchant


async def make_deal(
    db: AsyncSession,
    merchant: Merchant,
    name: str = "Two for one",
    is_active: bool = True,
    minutes: int = 0,
) -> Deal:
    """Create a deal published ``minutes`` after BASE_TIME."""
    deal = Deal(
        merchant_id=merchant.id,
        name=name,
        description=f"{name} at {merchant.name}",
        barcode=None,
        is_active=is_active,
        published_at=BASE_TIME + timedelta(minutes=minutes),
    )
    db.add(deal)
    await db.commit()
    return deal


@pytest_asyncio.fixture
async def sample_user(test_db: AsyncSession) -> User:
    """A consumer with no deal history."""
    return await make_user(test_db, "consumer@example.com")


@pytest_asyncio.fixture
async def sample_owner(test_db: AsyncSession) -> User:
    """The user owning sample_merchant."""
    return await make_user(test_db, "owner@example.com", is_merchant=True)


@pytest_asyncio.fixture
async def other_owner(test_db: AsyncSession) -> User:
    """A merchant user who owns other_merchant and nothing else."""
    return await make_user(test_db, "rival@example.com", is_merchant=True)


@pytest_asyncio.fixture
async def sample_merchant(test_db: AsyncSession, sample_owner: User) -> Merchant:
    return await make_merchant(test_db, sample_owner)


@pytest_asyncio.fixture
async def other_merchant(test_db: AsyncSession, other_owner: User) -> Merchant:
    return await make_merchant(test_db, other_owner, name="Rival Cafe", lat=1.0, lng=1.0)


@pytest_asyncio.fixture
async def sample_deal(test_db: AsyncSession, sample_merchant: Merchant) -> Deal:
    return await make_deal(test_db, sample_merchant)


# ============================================================================
# API CLIENT
# ============================================================================

@pytest.fixture
def app_context(test_settings: Settings, test_engine, credentials: CredentialService) -> AppContext:
    """Application context sharing the test engine, with caching disabled."""
    return AppContext(
        settings=test_settings,
        engine=test_engine,
        session_factory=build_session_factory(test_engine),
        credentials=credentials,
        cache=CacheService(test_settings.REDIS_URL, enabled=False),
        uploads=UploadSigner(test_settings),
    )


@pytest_asyncio.fixture
async def client(app_context: AppContext):
    """HTTP client against the app. Tables already exist, so lifespan is not run."""
    app = create_app(context=app_context)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers(credentials: CredentialService) -> Callable[[User], Dict[str, str]]:
    """Build a bearer Authorization header for a user."""
    def _headers(user: User) -> Dict[str, str]:
        return {"Authorization": f"Bearer {credentials.issue_token(user)}"}

    return _headers
