import os

# Settings are read at import time, so the test environment goes in first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_concession.db")
os.environ.setdefault("SECRET_KEY", "test_secret_key")
os.environ.setdefault("ADMIN_EMAILS", "admin@example.com")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool
from datetime import timedelta
from decimal import Decimal
import nanoid
import uuid
from unittest.mock import AsyncMock, patch

from app.db.session import get_db
from app.db.redis import get_redis, get_app_redis
from app.main import app
from app.models.base import Base, utcnow
from app.models.users import UserRole, EmailVerification
from app.models.catalog import Item
from app.core.security import create_access_token
from app.services.square import get_payment_processor
from tests.helpers import create_user, create_order, FakeProcessor

# Test database URL - use environment variable if available for CI/CD support
TEST_DB_URL = os.getenv("TEST_DB_URL", "sqlite+aiosqlite:///./test_concession.db")

ADMIN_EMAIL = "admin@example.com"

# Create async engine and session
engine = create_async_engine(TEST_DB_URL, poolclass=NullPool)
TestingSessionLocal = sessionmaker(
    engine, expire_on_commit=False, class_=AsyncSession
)


@pytest.fixture(scope="function")
async def test_db():
    """Create test database tables before tests and drop them after"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield

    # Clean up after tests
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def session_factory(test_db):
    """Independent sessions, one per concurrent caller"""
    return TestingSessionLocal


@pytest.fixture
async def db_session(test_db):
    """Create a clean database session for each test"""
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
async def test_user(db_session):
    """Create a customer"""
    return await create_user(db_session, "test@example.com")


@pytest.fixture
async def other_user(db_session):
    """Create a second customer for ownership checks"""
    return await create_user(db_session, "other@example.com")


@pytest.fixture
async def admin_user(db_session):
    """Create an allowlisted admin"""
    return await create_user(db_session, ADMIN_EMAIL, role=UserRole.ADMIN)


@pytest.fixture
async def test_item(db_session):
    """Create a menu item priced at 10.00 with 6% tax"""
    item = Item(
        id=uuid.uuid4(),
        sid=nanoid.generate(size=22),
        name="Test Burger",
        description="Double patty",
        price=Decimal("10.00"),
        stock=20,
        category="Burgers",
        available=True,
        tax_rate=Decimal("0.0600"),
    )
    db_session.add(item)
    await db_session.commit()
    await db_session.refresh(item)
    return item


@pytest.fixture
async def second_item(db_session):
    """Create a menu item priced at 2.50 with no tax"""
    item = Item(
        id=uuid.uuid4(),
        sid=nanoid.generate(size=22),
        name="Lemonade",
        price=Decimal("2.50"),
        stock=3,
        category="Drinks",
        available=True,
        tax_rate=Decimal("0"),
    )
    db_session.add(item)
    await db_session.commit()
    await db_session.refresh(item)
    return item


@pytest.fixture
async def test_order(db_session, test_user):
    """Create a pending order for test_user totalling 21.20"""
    return await create_order(db_session, test_user)


@pytest.fixture
async def verification_challenge(db_session):
    """Create a pending verification code for a new customer"""
    challenge = EmailVerification(
        id=uuid.uuid4(),
        sid=nanoid.generate(size=22),
        email="new@example.com",
        code="123456",
        attempts=0,
        verified=False,
        expires_at=utcnow() + timedelta(minutes=10),
    )
    db_session.add(challenge)
    await db_session.commit()
    await db_session.refresh(challenge)
    return challenge


@pytest.fixture
async def mock_redis():
    """Mock Redis client"""
    redis_mock = AsyncMock()
    redis_mock.get.return_value = None
    redis_mock.set.return_value = True
    redis_mock.delete.return_value = True
    redis_mock.incr.return_value = 1
    redis_mock.expire.return_value = True
    redis_mock.ttl.return_value = 60
    redis_mock.publish.return_value = 1
    return redis_mock


@pytest.fixture
def fake_processor():
    return FakeProcessor()


@pytest.fixture
async def client(db_session, mock_redis, fake_processor):
    """Create test client with mocked dependencies"""

    # Override db dependency
    async def override_get_db():
        yield db_session

    # Override redis dependency
    async def override_get_redis():
        yield mock_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_app_redis] = lambda: mock_redis
    app.dependency_overrides[get_payment_processor] = lambda: fake_processor

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    # Clear overrides after test
    app.dependency_overrides = {}


@pytest.fixture
def test_token(test_user):
    return create_access_token(test_user.sid, test_user.email)


@pytest.fixture
def admin_token(admin_user):
    return create_access_token(admin_user.sid, admin_user.email)


@pytest.fixture
def authorized_client(client, test_token):
    """Create authorized client with authentication token"""
    client.headers = {
        **client.headers,
        "Authorization": f"Bearer {test_token}"
    }
    return client


@pytest.fixture
def admin_client(client, admin_token):
    client.headers = {
        **client.headers,
        "Authorization": f"Bearer {admin_token}"
    }
    return client


# Email mocking
@pytest.fixture
def mock_email_service():
    """Mock email service"""
    with patch("app.services.verification.send_verification_email", new_callable=AsyncMock) as mock:
        mock.return_value = True
        yield mock


@pytest.fixture
def mock_fanout():
    with patch("app.services.realtime.manager.broadcast", new_callable=AsyncMock) as mock:
        mock.return_value = 0
        yield mock
