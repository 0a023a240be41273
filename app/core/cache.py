import logging
from typing import Protocol

logger = logging.getLogger(__name__)

ALL_BOOKS_CACHE_KEY = "all_books"


class KeyValueCache(Protocol):
    async def delete(self, *names: str) -> int: ...


class BookCache:
    """Invalidation target for cached book views, backed by Redis."""

    def __init__(self, client: KeyValueCache, default_key: str = ALL_BOOKS_CACHE_KEY):
        self.client = client
        self.default_key = default_key

    async def invalidate(self, key: str | None = None) -> str:
        cache_key = key or self.default_key
        removed = await self.client.delete(cache_key)
        logger.info(f"Cache invalidated for key: {cache_key} (removed={removed})")
        return cache_key
