import math
import uuid
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from app.config import settings
from app.models.book import Book, BookCategory
from app.schemas.book import BookCreate, BookProfile
from app.utils.datetime_utils import ensure_utc, utcnow

CATEGORY_DISPLAY_NAMES: dict[BookCategory, str] = {
    BookCategory.FICTION: "Fiction & Literature",
    BookCategory.NON_FICTION: "Non-Fiction",
    BookCategory.TECHNICAL: "Technical & Professional",
    BookCategory.CHILDREN: "Children's Books",
}

CHILDREN_DISCOUNT = Decimal("0.9")
CENTS = Decimal("0.01")


def book_from_request(
    data: BookCreate, category: BookCategory, now: datetime | None = None
) -> Book:
    return Book(
        id=uuid.uuid4(),
        title=data.title,
        author=data.author,
        isbn=data.isbn,
        category=category,
        price=data.price,
        published_date=data.published_date,
        cover_image_url=data.cover_image_url,
        stock_quantity=data.stock_quantity,
        is_available=data.stock_quantity > 0,
        created_at=now or utcnow(),
        updated_at=None,
    )


def category_display_name(category: BookCategory | None) -> str:
    return CATEGORY_DISPLAY_NAMES.get(category, "Uncategorized")


def effective_price(book: Book) -> Decimal:
    price = Decimal(book.price)
    if book.category == BookCategory.CHILDREN:
        price = price * CHILDREN_DISCOUNT
    return price.quantize(CENTS, rounding=ROUND_HALF_UP)


def format_price(amount: Decimal, symbol: str | None = None) -> str:
    symbol = settings.CURRENCY_SYMBOL if symbol is None else symbol
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def published_age(published_date: datetime, now: datetime | None = None) -> str:
    now = now or utcnow()
    days = (now - ensure_utc(published_date)).total_seconds() / 86400

    if days < 30:
        return "New Release"
    if days < 365:
        return f"{math.floor(days / 30)} months old"
    if days < 1825:
        return f"{math.floor(days / 365)} years old"
    return "Classic"


def author_initials(author: str) -> str:
    parts = author.split() if author else []
    if not parts:
        return "?"
    if len(parts) >= 2:
        return f"{parts[0][0].upper()}{parts[-1][0].upper()}"
    return parts[0][0].upper()


def availability_status(book: Book) -> str:
    if not book.is_available:
        return "Out of Stock"
    # Unreachable while is_available is derived from stock at creation.
    if book.stock_quantity == 0:
        return "Unavailable"
    if book.stock_quantity == 1:
        return "Last Copy"
    if book.stock_quantity <= 5:
        return "Limited Stock"
    return "In Stock"


def book_to_profile(book: Book, now: datetime | None = None) -> BookProfile:
    price = effective_price(book)

    return BookProfile(
        id=book.id,
        title=book.title,
        author=book.author,
        isbn=book.isbn,
        category_display_name=category_display_name(book.category),
        price=price,
        formatted_price=format_price(price),
        published_date=book.published_date,
        created_at=book.created_at,
        cover_image_url=None
        if book.category == BookCategory.CHILDREN
        else book.cover_image_url,
        is_available=book.is_available,
        stock_quantity=book.stock_quantity,
        published_age=published_age(book.published_date, now),
        author_initials=author_initials(book.author),
        availability_status=availability_status(book),
    )
