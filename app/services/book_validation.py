"""Rule pipeline for book creation requests.

Every rule is evaluated and every failure is collected; a rule whose ``when``
predicate is false is skipped. Shape rules are plain functions of the request.
Rules that need stored state call into an injected :class:`BookLookup`, so the
engine runs against a real session or an in-memory fake alike.
"""

import inspect
import logging
import re
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from urllib.parse import urlsplit

from app.config import settings
from app.core.exceptions import BookValidationError
from app.models.book import (
    COVER_IMAGE_URL_MAX_LENGTH,
    ISBN_MAX_LENGTH,
    BookCategory,
)
from app.schemas.book import BookCreate
from app.services.book_store import BookLookup
from app.utils.datetime_utils import start_of_utc_day, utcnow

logger = logging.getLogger(__name__)

REQUEST_FIELD = "request"
ISBN_TAKEN_MESSAGE = "ISBN already exists in the system."
TITLE_TAKEN_MESSAGE = "A book with this title already exists for this author."

AUTHOR_NAME_PATTERN = re.compile(r"^[a-zA-Z\s\-'.]+$")
ISBN_LENGTHS = (10, 13)
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")

MAX_PRICE = Decimal("10000")
PRICE_DECIMAL_PLACES = 2
TECHNICAL_MIN_PRICE = Decimal("20.00")
CHILDREN_MAX_PRICE = Decimal("50.00")
HIGH_VALUE_PRICE = Decimal("100")
HIGH_VALUE_MAX_STOCK = 20
PREMIUM_PRICE = Decimal("500")
PREMIUM_MAX_STOCK = 10
MAX_STOCK = 100_000
MIN_PUBLISHED_YEAR = 1400
TECHNICAL_MAX_AGE_YEARS = 5
FICTION_MIN_AUTHOR_LENGTH = 5

Check = Callable[[BookCreate], bool | Awaitable[bool]]
Predicate = Callable[[BookCreate], bool]


@dataclass(frozen=True)
class Rule:
    field: str
    message: str
    check: Check
    when: Predicate | None = None

    async def passes(self, request: BookCreate) -> bool:
        if self.when is not None and not self.when(request):
            return True

        outcome = self.check(request)
        if inspect.isawaitable(outcome):
            outcome = await outcome
        return bool(outcome)


def clean_isbn(isbn: str) -> str:
    return isbn.replace("-", "").replace(" ", "")


def is_valid_isbn(isbn: str) -> bool:
    if not isbn or not isbn.strip():
        return False
    cleaned = clean_isbn(isbn)
    return len(cleaned) in ISBN_LENGTHS and cleaned.isascii() and cleaned.isdigit()


def has_price_precision(price: Decimal) -> bool:
    exponent = price.normalize().as_tuple().exponent
    return isinstance(exponent, int) and exponent >= -PRICE_DECIMAL_PLACES


def is_valid_image_url(url: str | None) -> bool:
    if not url:
        return True

    try:
        parts = urlsplit(url)
    except ValueError:
        return False

    if parts.scheme not in ("http", "https") or not parts.netloc:
        return False

    return url.lower().endswith(IMAGE_EXTENSIONS)


def contains_blocked_word(text: str, words: Iterable[str]) -> bool:
    lowered = text.lower()
    return any(word.lower() in lowered for word in words)


def is_valid_author_name(author: str) -> bool:
    return AUTHOR_NAME_PATTERN.fullmatch(author) is not None


def years_before(moment: datetime, years: int) -> datetime:
    try:
        return moment.replace(year=moment.year - years)
    except ValueError:
        # Feb 29 in a non-leap target year
        return moment.replace(year=moment.year - years, day=28)


class BookValidator:
    def __init__(
        self,
        lookup: BookLookup,
        title_blocklist: Iterable[str] | None = None,
        children_blocklist: Iterable[str] | None = None,
        daily_limit: int | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.lookup = lookup
        self.title_blocklist = list(
            settings.title_blocklist if title_blocklist is None else title_blocklist
        )
        self.children_blocklist = list(
            settings.children_title_blocklist
            if children_blocklist is None
            else children_blocklist
        )
        self.daily_limit = settings.DAILY_BOOK_LIMIT if daily_limit is None else daily_limit
        self.clock = clock

        self.field_rules = self._build_field_rules()
        self.category_rules = self._build_category_rules()
        self.cross_field_rules = [
            Rule(
                "stockQuantity",
                f"High-value books (> ${HIGH_VALUE_PRICE}) are limited to {HIGH_VALUE_MAX_STOCK} stock units.",
                lambda r: r.stock_quantity <= HIGH_VALUE_MAX_STOCK,
                when=lambda r: r.price > HIGH_VALUE_PRICE,
            ),
            Rule(
                REQUEST_FIELD,
                f"Daily book addition limit ({self.daily_limit}) reached.",
                self._under_daily_limit,
            ),
        ]

    def _build_field_rules(self) -> list[Rule]:
        return [
            Rule("title", "Title is required.", lambda r: bool(r.title.strip())),
            Rule(
                "title",
                "Title must be between 1 and 200 characters.",
                lambda r: 1 <= len(r.title) <= 200,
            ),
            Rule(
                "title",
                "Title contains inappropriate content.",
                lambda r: bool(r.title.strip())
                and not contains_blocked_word(r.title, self.title_blocklist),
            ),
            Rule(
                "title",
                TITLE_TAKEN_MESSAGE,
                self._is_unique_title,
            ),
            Rule("author", "Author name is required.", lambda r: bool(r.author.strip())),
            Rule(
                "author",
                "Author name must be between 2 and 100 characters.",
                lambda r: 2 <= len(r.author) <= 100,
            ),
            Rule(
                "author",
                "Author name contains invalid characters.",
                lambda r: is_valid_author_name(r.author),
            ),
            Rule("isbn", "ISBN is required.", lambda r: bool(r.isbn.strip())),
            Rule("isbn", "Invalid ISBN format.", lambda r: is_valid_isbn(r.isbn)),
            Rule(
                "isbn",
                f"ISBN cannot exceed {ISBN_MAX_LENGTH} characters.",
                lambda r: len(r.isbn) <= ISBN_MAX_LENGTH,
            ),
            Rule("isbn", ISBN_TAKEN_MESSAGE, self._is_unique_isbn),
            Rule(
                "category",
                "Invalid book category.",
                lambda r: r.resolved_category is not None,
            ),
            Rule("price", "Price must be greater than 0.", lambda r: r.price > 0),
            Rule("price", "Price cannot exceed $10,000.", lambda r: r.price < MAX_PRICE),
            Rule(
                "price",
                "Price cannot have more than 2 decimal places.",
                lambda r: has_price_precision(r.price),
            ),
            Rule(
                "publishedDate",
                "Published date cannot be in the future.",
                lambda r: r.published_date <= self.clock(),
            ),
            Rule(
                "publishedDate",
                f"Published date cannot be before year {MIN_PUBLISHED_YEAR}.",
                lambda r: r.published_date.year >= MIN_PUBLISHED_YEAR,
            ),
            Rule(
                "stockQuantity",
                "Stock quantity cannot be negative.",
                lambda r: r.stock_quantity >= 0,
            ),
            Rule(
                "stockQuantity",
                "Stock quantity exceeds reasonable limit (100,000).",
                lambda r: r.stock_quantity <= MAX_STOCK,
            ),
            Rule(
                "coverImageUrl",
                "Invalid Cover Image URL.",
                lambda r: is_valid_image_url(r.cover_image_url),
                when=lambda r: bool(r.cover_image_url),
            ),
            Rule(
                "coverImageUrl",
                f"Cover Image URL cannot exceed {COVER_IMAGE_URL_MAX_LENGTH} characters.",
                lambda r: len(r.cover_image_url or "") <= COVER_IMAGE_URL_MAX_LENGTH,
            ),
            Rule(
                REQUEST_FIELD,
                "Business validation rules failed.",
                self._passes_business_rules,
            ),
        ]

    def _build_category_rules(self) -> dict[BookCategory, list[Rule]]:
        return {
            BookCategory.TECHNICAL: [
                Rule(
                    "price",
                    "Technical books must be at least $20.00.",
                    lambda r: r.price >= TECHNICAL_MIN_PRICE,
                ),
                Rule(
                    "publishedDate",
                    "Technical books must be published within the last 5 years.",
                    lambda r: r.published_date
                    >= years_before(self.clock(), TECHNICAL_MAX_AGE_YEARS),
                ),
            ],
            BookCategory.CHILDREN: [
                Rule(
                    "price",
                    "Children's books cannot exceed $50.00.",
                    lambda r: r.price <= CHILDREN_MAX_PRICE,
                ),
                Rule(
                    "title",
                    "Children's book title contains restricted words.",
                    lambda r: bool(r.title)
                    and not contains_blocked_word(r.title, self.children_blocklist),
                ),
            ],
            BookCategory.FICTION: [
                Rule(
                    "author",
                    "Fiction authors must provide full name (minimum 5 characters).",
                    lambda r: len(r.author) >= FICTION_MIN_AUTHOR_LENGTH,
                ),
            ],
        }

    def rules_for(self, request: BookCreate) -> list[Rule]:
        conditional = self.category_rules.get(request.resolved_category, [])
        return [*self.field_rules, *conditional, *self.cross_field_rules]

    async def validate(self, request: BookCreate) -> dict[str, list[str]]:
        errors: dict[str, list[str]] = {}

        for rule in self.rules_for(request):
            if not await rule.passes(request):
                errors.setdefault(rule.field, []).append(rule.message)

        return errors

    async def validate_or_raise(self, request: BookCreate) -> None:
        errors = await self.validate(request)
        if errors:
            raise BookValidationError(errors)

    async def _is_unique_title(self, request: BookCreate) -> bool:
        logger.info(
            f"Validating uniqueness for Title: '{request.title}' and Author: '{request.author}'"
        )
        return not await self.lookup.title_author_exists(request.title, request.author)

    async def _is_unique_isbn(self, request: BookCreate) -> bool:
        logger.info(f"Validating ISBN uniqueness: {request.isbn}")
        return not await self.lookup.isbn_exists(request.isbn)

    async def _books_added_today(self) -> int:
        return await self.lookup.count_created_since(start_of_utc_day(self.clock()))

    async def _under_daily_limit(self, request: BookCreate) -> bool:
        return await self._books_added_today() < self.daily_limit

    async def _passes_business_rules(self, request: BookCreate) -> bool:
        logger.info(
            f"Starting complex business rules validation for book: {request.title}"
        )

        books_added_today = await self._books_added_today()
        if books_added_today >= self.daily_limit:
            logger.warning(
                f"Daily book limit reached. Current count: {books_added_today}"
            )
            return False

        category = request.resolved_category

        if category == BookCategory.TECHNICAL and request.price < TECHNICAL_MIN_PRICE:
            logger.warning(
                f"Validation Failed: Technical books must cost at least $20.00. Given: {request.price}"
            )
            return False

        if category == BookCategory.CHILDREN and contains_blocked_word(
            request.title, self.children_blocklist
        ):
            logger.warning(
                "Validation Failed: Children's book title contains restricted content."
            )
            return False

        if request.price > PREMIUM_PRICE and request.stock_quantity > PREMIUM_MAX_STOCK:
            logger.warning(
                f"Validation Failed: High-value book (> ${PREMIUM_PRICE}) stock limited to {PREMIUM_MAX_STOCK}. Given: {request.stock_quantity}"
            )
            return False

        return True
