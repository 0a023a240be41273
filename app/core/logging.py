import logging
import json
from contextvars import ContextVar
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from decimal import Decimal

from app.config import settings

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


class CorrelationIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or "-"
        return True


logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] %(message)s",
)
for _handler in logging.getLogger().handlers:
    _handler.addFilter(CorrelationIdFilter())

book_logger = logging.getLogger("books")


@dataclass
class BookCreationMetrics:
    operation_id: str
    book_title: str
    isbn: str
    category: str
    validation_duration_ms: float
    database_save_duration_ms: float
    total_duration_ms: float
    success: bool
    error_reason: str | None = None


def _dump(log_data: dict[str, object]) -> str:
    return json.dumps(log_data, default=str)


class BookEventLogger:
    @staticmethod
    def log_creation_started(
        title: str, author: str, isbn: str, category: object, price: Decimal
    ):
        log_data: dict[str, object] = {
            "event_type": "book_creation_started",
            "title": title,
            "author": author,
            "isbn": isbn,
            "category": category,
            "price": price,
            "correlation_id": correlation_id_var.get(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        book_logger.info(
            f"Creating book: {title} by {author}. Category: {category}, ISBN: {isbn} "
            + _dump(log_data)
        )

    @staticmethod
    def log_validation_failed(title: str, errors: dict[str, list[str]]):
        log_data: dict[str, object] = {
            "event_type": "book_validation_failed",
            "title": title,
            "errors": errors,
            "correlation_id": correlation_id_var.get(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        book_logger.warning(f"Book validation failed: {_dump(log_data)}")

    @staticmethod
    def log_duplicate_isbn(isbn: str):
        log_data: dict[str, object] = {
            "event_type": "book_duplicate_isbn",
            "isbn": isbn,
            "correlation_id": correlation_id_var.get(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        book_logger.warning(
            f"Book creation failed. ISBN {isbn} already exists. {_dump(log_data)}"
        )

    @staticmethod
    def log_creation_completed(book_id: object):
        log_data: dict[str, object] = {
            "event_type": "book_creation_completed",
            "book_id": book_id,
            "correlation_id": correlation_id_var.get(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        book_logger.info(
            f"Book created successfully with ID: {book_id} {_dump(log_data)}"
        )

    @staticmethod
    def log_metrics(metrics: BookCreationMetrics):
        message = f"Book Operation Metrics: {_dump(asdict(metrics))}"

        if metrics.success:
            book_logger.info(message)
        else:
            book_logger.warning(message)
