from .base import Base
from .book import Book, BookCategory

__all__ = [
    "Base",
    "Book",
    "BookCategory",
]
