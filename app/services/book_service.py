import asyncio
import logging
import time
from uuid import uuid4

from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import BookCache
from app.core.exceptions import BookValidationError, DuplicateBookError
from app.core.logging import BookCreationMetrics, BookEventLogger
from app.models.book import Book
from app.schemas.book import BookCreate, BookProfile
from app.services.book_mapping import book_from_request, book_to_profile
from app.services.book_store import BookStore
from app.services.book_validation import (
    ISBN_TAKEN_MESSAGE,
    TITLE_TAKEN_MESSAGE,
    BookValidator,
)

logger = logging.getLogger(__name__)


def _elapsed_ms(since: float) -> float:
    return round((time.perf_counter() - since) * 1000, 3)


def _is_duplicate_submission(errors: dict[str, list[str]]) -> bool:
    # Only the stored-record collisions failed: a taken ISBN, optionally with
    # its title and author pair.
    if errors.get("isbn") != [ISBN_TAKEN_MESSAGE]:
        return False
    return all(
        field == "isbn" or (field == "title" and messages == [TITLE_TAKEN_MESSAGE])
        for field, messages in errors.items()
    )


class BookService:
    """Creates books: validate, re-check the ISBN, persist, invalidate the
    cached list, then project the stored entity into a profile.

    Uniqueness is read-then-write with no lock or unique constraint, so two
    concurrent requests for the same ISBN can both be stored.
    """

    def __init__(
        self,
        db: AsyncSession,
        cache: BookCache,
        validator: BookValidator | None = None,
    ):
        self.db = db
        self.store = BookStore(db)
        self.cache = cache
        self.validator = validator or BookValidator(self.store)

    async def create_book(self, data: BookCreate) -> BookProfile:
        operation_id = str(uuid4())
        started = time.perf_counter()
        validation_ms = 0.0
        database_ms = 0.0

        BookEventLogger.log_creation_started(
            data.title, data.author, data.isbn, data.category, data.price
        )

        try:
            errors = await self.validator.validate(data)
            validation_ms = _elapsed_ms(started)

            if _is_duplicate_submission(errors):
                BookEventLogger.log_duplicate_isbn(data.isbn)
                raise DuplicateBookError(data.isbn)

            if errors:
                BookEventLogger.log_validation_failed(data.title, errors)
                raise BookValidationError(errors)

            category = data.resolved_category
            if category is None:
                raise BookValidationError({"category": ["Invalid book category."]})

            if await self.store.isbn_exists(data.isbn):
                BookEventLogger.log_duplicate_isbn(data.isbn)
                raise DuplicateBookError(data.isbn)

            book = book_from_request(data, category)

            db_started = time.perf_counter()
            book = await self._persist_to_completion(book)
            database_ms = _elapsed_ms(db_started)
        except Exception as e:
            BookEventLogger.log_metrics(
                BookCreationMetrics(
                    operation_id=operation_id,
                    book_title=data.title,
                    isbn=data.isbn,
                    category=data.category,
                    validation_duration_ms=validation_ms,
                    database_save_duration_ms=database_ms,
                    total_duration_ms=_elapsed_ms(started),
                    success=False,
                    error_reason=f"{type(e).__name__}: {e}",
                )
            )
            raise

        profile = book_to_profile(book)

        BookEventLogger.log_creation_completed(profile.id)
        BookEventLogger.log_metrics(
            BookCreationMetrics(
                operation_id=operation_id,
                book_title=book.title,
                isbn=book.isbn,
                category=book.category.value,
                validation_duration_ms=validation_ms,
                database_save_duration_ms=database_ms,
                total_duration_ms=_elapsed_ms(started),
                success=True,
            )
        )
        return profile

    async def _persist_to_completion(self, book: Book) -> Book:
        # Cancellation before this point aborts cleanly; from here on the
        # commit and cache invalidation always finish.
        task = asyncio.ensure_future(self._persist_and_invalidate(book))
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.done():
                await task
            raise

    async def _persist_and_invalidate(self, book: Book) -> Book:
        book = await self.store.add(book)
        logger.info(f"Book {book.id} committed")

        try:
            await self.cache.invalidate()
        except RedisError as e:
            logger.warning(
                f"Cache invalidation failed after commit of book {book.id}: {e}"
            )

        return book
