import pytest_asyncio
import uuid
import os
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/1")
os.environ.setdefault("SKIP_CONFIG_VALIDATION", "true")

os.environ["RATE_LIMIT_PER_MINUTE"] = "1000"

from app.main import app
from app.core.cache import BookCache
from app.database import get_book_cache, get_db
from app.models.base import Base

TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"


class RecordingRedis:
    def __init__(self):
        self.deleted: list[str] = []

    async def delete(self, *names: str) -> int:
        self.deleted.extend(names)
        return len(names)


@pytest_asyncio.fixture
async def async_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False}
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()

        db_file = "./test.db"
        if os.path.exists(db_file):
            os.remove(db_file)

    except Exception as e:
        print(f"Test cleanup warning: {e}")

@pytest_asyncio.fixture
async def async_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    async_session_maker = async_sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()

@pytest_asyncio.fixture
async def fake_redis() -> RecordingRedis:
    return RecordingRedis()

@pytest_asyncio.fixture
async def book_cache(fake_redis: RecordingRedis) -> BookCache:
    return BookCache(fake_redis)

@pytest_asyncio.fixture
async def async_client(
    async_session: AsyncSession, book_cache: BookCache
) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        yield async_session

    async def override_get_book_cache():
        return book_cache

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_book_cache] = override_get_book_cache

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        timeout=30.0
    ) as ac:
        yield ac

    app.dependency_overrides.clear()

def _unique_isbn() -> str:
    return f"978{uuid.uuid4().int % 10**10:010d}"

@pytest_asyncio.fixture
async def book_payload():
    unique_id = str(uuid.uuid4())[:8]
    return {
        "title": f"Practical Gardening {unique_id}",
        "author": "Monty Donald",
        "isbn": _unique_isbn(),
        "category": "NonFiction",
        "price": 24.99,
        "publishedDate": (datetime.now(timezone.utc) - timedelta(days=90)).isoformat(),
        "coverImageUrl": "https://covers.example.com/gardening.jpg",
        "stockQuantity": 12,
    }
