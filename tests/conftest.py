"""
Pytest configuration and fixtures for testing
"""
import pytest
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base
from crud.user import UserRepository
from crud.video import VideoRepository

# Create in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Create test engine; StaticPool keeps every session on the one in-memory database
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    future=True,
    poolclass=StaticPool,
)

# Create test session factory
TestAsyncSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


@pytest.fixture
async def test_db():
    """
    Fixture that provides an isolated, in-memory SQLite database connection for each test.

    This fixture:
    - Creates all tables before the test runs
    - Yields a clean AsyncSession for the test
    - Drops all tables after the test completes
    """
    async with test_engine.begin() as conn:
        # Import models to ensure they're registered with Base
        import database_models  # noqa: F401
        await conn.run_sync(Base.metadata.create_all)

    async with TestAsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def user(test_db):
    return await UserRepository(test_db).create_user({"email": "viewer@example.com", "name": "Viewer"})


@pytest.fixture
async def other_user(test_db):
    return await UserRepository(test_db).create_user({"email": "other@example.com", "name": "Other"})


@pytest.fixture
async def video(test_db, user):
    return await VideoRepository(test_db).create_video({
        "title": "Launch Day",
        "filename": "launch.mp4",
        "filepath": "uploads/launch.mp4",
        "uploader_id": user.id,
    })


class FrozenClock:
    """Callable clock whose value tests can move."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, delta):
        self.now = self.now + delta
