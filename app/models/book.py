import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Enum as SQLEnum
from sqlalchemy import Index, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base
from .types import UTCDateTime


ISBN_MAX_LENGTH = 20
COVER_IMAGE_URL_MAX_LENGTH = 500


class BookCategory(str, Enum):
    FICTION = "Fiction"
    NON_FICTION = "NonFiction"
    TECHNICAL = "Technical"
    CHILDREN = "Children"

    @property
    def code(self) -> int:
        return list(BookCategory).index(self)

    @classmethod
    def parse(cls, value: object) -> "BookCategory | None":
        """Resolve a category from its name (any case) or its numeric code."""
        if isinstance(value, BookCategory):
            return value
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            members = list(cls)
            return members[value] if 0 <= value < len(members) else None
        if isinstance(value, str):
            text = value.strip()
            if text.isascii() and text.isdigit():
                return cls.parse(int(text))
            for member in cls:
                if text.lower() in (member.value.lower(), member.name.lower()):
                    return member
        return None


class Book(Base):
    __tablename__ = "books"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    author: Mapped[str] = mapped_column(String(100), nullable=False)
    # Stored as submitted; uniqueness is enforced by validation only.
    isbn: Mapped[str] = mapped_column(
        String(ISBN_MAX_LENGTH), nullable=False, index=True
    )
    category: Mapped[BookCategory] = mapped_column(
        SQLEnum(BookCategory, native_enum=False, length=20), nullable=False
    )
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    published_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    cover_image_url: Mapped[str | None] = mapped_column(
        String(COVER_IMAGE_URL_MAX_LENGTH)
    )
    stock_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_available: Mapped[bool] = mapped_column(default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime)

    __table_args__ = (
        Index("idx_books_title_author", "title", "author"),
        Index("idx_books_created", "created_at"),
    )
