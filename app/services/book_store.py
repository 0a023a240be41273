import logging
from datetime import datetime
from typing import Protocol

from sqlalchemy import exists, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.book import Book

logger = logging.getLogger(__name__)


class BookLookup(Protocol):
    """Read-side queries the validation engine depends on."""

    async def isbn_exists(self, isbn: str) -> bool: ...

    async def title_author_exists(self, title: str, author: str) -> bool: ...

    async def count_created_since(self, since: datetime) -> int: ...


class BookStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def isbn_exists(self, isbn: str) -> bool:
        result = await self.db.execute(select(exists().where(Book.isbn == isbn)))
        return bool(result.scalar())

    async def title_author_exists(self, title: str, author: str) -> bool:
        result = await self.db.execute(
            select(exists().where(Book.title == title, Book.author == author))
        )
        return bool(result.scalar())

    async def count_created_since(self, since: datetime) -> int:
        result = await self.db.execute(
            select(func.count(Book.id)).where(Book.created_at >= since)
        )
        return result.scalar() or 0

    async def count(self) -> int:
        result = await self.db.execute(select(func.count(Book.id)))
        return result.scalar() or 0

    async def add(self, book: Book) -> Book:
        self.db.add(book)
        try:
            await self.db.commit()
        except SQLAlchemyError:
            logger.error(f"Commit failed for book ISBN {book.isbn}, rolling back")
            await self.db.rollback()
            raise

        await self.db.refresh(book)
        return book
