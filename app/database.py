from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from collections.abc import AsyncGenerator
from app.config import settings
from app.core.cache import BookCache
import redis.asyncio as redis

_engine_options: dict[str, object] = {"echo": settings.DB_ECHO, "pool_pre_ping": True}
if not settings.DATABASE_URL.startswith("sqlite"):
    _engine_options.update(pool_size=10, max_overflow=20)

engine = create_async_engine(settings.DATABASE_URL, **_engine_options)

AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

redis_client = redis.from_url(settings.REDIS_URL)  # type: ignore[misc]


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


async def get_book_cache() -> BookCache:
    return BookCache(redis_client, default_key=settings.BOOKS_CACHE_KEY)
