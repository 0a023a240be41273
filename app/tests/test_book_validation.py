import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from app.core.exceptions import BookValidationError
from app.models.book import BookCategory
from app.schemas.book import BookCreate
from app.services.book_validation import (
    REQUEST_FIELD,
    BookValidator,
    has_price_precision,
    is_valid_image_url,
    is_valid_isbn,
    years_before,
)

FIXED_NOW = datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc)


class FakeBookLookup:
    def __init__(self, isbns=(), title_authors=(), created_today: int = 0):
        self.isbns = set(isbns)
        self.title_authors = set(title_authors)
        self.created_today = created_today
        self.count_calls = 0

    async def isbn_exists(self, isbn: str) -> bool:
        return isbn in self.isbns

    async def title_author_exists(self, title: str, author: str) -> bool:
        return (title, author) in self.title_authors

    async def count_created_since(self, since: datetime) -> int:
        self.count_calls += 1
        assert since == datetime(2026, 6, 15, tzinfo=timezone.utc)
        return self.created_today


def make_request(**overrides) -> BookCreate:
    data = {
        "title": "Clean Architecture Notes",
        "author": "Robert Martin",
        "isbn": "978-0-13-235088-4",
        "category": "NonFiction",
        "price": Decimal("25.00"),
        "published_date": FIXED_NOW - timedelta(days=700),
        "cover_image_url": "https://covers.example.com/clean.png",
        "stock_quantity": 10,
    }
    data.update(overrides)
    return BookCreate(**data)


def make_validator(lookup: FakeBookLookup | None = None, **kwargs) -> BookValidator:
    return BookValidator(lookup or FakeBookLookup(), clock=lambda: FIXED_NOW, **kwargs)


class TestShapeRules:

    @pytest.mark.asyncio
    async def test_valid_request_has_no_errors(self):
        errors = await make_validator().validate(make_request())

        assert errors == {}

    @pytest.mark.asyncio
    async def test_empty_title_collects_every_title_failure(self):
        errors = await make_validator().validate(make_request(title=""))

        assert errors == {
            "title": [
                "Title is required.",
                "Title must be between 1 and 200 characters.",
                "Title contains inappropriate content.",
            ]
        }

    @pytest.mark.asyncio
    async def test_title_too_long(self):
        errors = await make_validator().validate(make_request(title="x" * 201))

        assert errors == {"title": ["Title must be between 1 and 200 characters."]}

    @pytest.mark.asyncio
    async def test_blocked_title_word_is_case_insensitive(self):
        errors = await make_validator().validate(
            make_request(title="A Truly OFFENSIVE Story")
        )

        assert errors == {"title": ["Title contains inappropriate content."]}

    @pytest.mark.asyncio
    async def test_title_blocklist_is_injectable(self):
        validator = make_validator(title_blocklist=["dragon"])

        errors = await validator.validate(make_request(title="Dragon Tales"))
        assert errors == {"title": ["Title contains inappropriate content."]}

        assert await validator.validate(make_request(title="Banned Books Week")) == {}

    @pytest.mark.asyncio
    async def test_author_rules(self):
        errors = await make_validator().validate(make_request(author="R2-D2"))
        assert errors == {"author": ["Author name contains invalid characters."]}

        errors = await make_validator().validate(make_request(author="X"))
        assert errors == {"author": ["Author name must be between 2 and 100 characters."]}

        assert await make_validator().validate(make_request(author="Flannery O'Connor-Jr.")) == {}

    @pytest.mark.asyncio
    async def test_isbn_format(self):
        errors = await make_validator().validate(make_request(isbn="12345"))
        assert errors == {"isbn": ["Invalid ISBN format."]}

        errors = await make_validator().validate(make_request(isbn="   "))
        assert errors == {"isbn": ["ISBN is required.", "Invalid ISBN format."]}

    @pytest.mark.asyncio
    async def test_invalid_category(self):
        errors = await make_validator().validate(make_request(category="Poetry"))

        assert errors == {"category": ["Invalid book category."]}

    @pytest.mark.asyncio
    async def test_price_bounds(self):
        errors = await make_validator().validate(make_request(price=Decimal("0")))
        assert errors == {"price": ["Price must be greater than 0."]}

        errors = await make_validator().validate(
            make_request(price=Decimal("10000"), stock_quantity=5)
        )
        assert errors == {"price": ["Price cannot exceed $10,000."]}

    @pytest.mark.asyncio
    async def test_published_date_bounds(self):
        errors = await make_validator().validate(
            make_request(published_date=FIXED_NOW + timedelta(days=1))
        )
        assert errors == {"publishedDate": ["Published date cannot be in the future."]}

        errors = await make_validator().validate(
            make_request(published_date=datetime(1399, 12, 31, tzinfo=timezone.utc))
        )
        assert errors == {"publishedDate": ["Published date cannot be before year 1400."]}

    @pytest.mark.asyncio
    async def test_stock_bounds(self):
        errors = await make_validator().validate(make_request(stock_quantity=-1))
        assert errors == {"stockQuantity": ["Stock quantity cannot be negative."]}

        errors = await make_validator().validate(make_request(stock_quantity=100_001))
        assert errors == {
            "stockQuantity": ["Stock quantity exceeds reasonable limit (100,000)."]
        }

    @pytest.mark.asyncio
    async def test_cover_image_url(self):
        errors = await make_validator().validate(
            make_request(cover_image_url="ftp://covers.example.com/a.jpg")
        )
        assert errors == {"coverImageUrl": ["Invalid Cover Image URL."]}

        assert await make_validator().validate(make_request(cover_image_url=None)) == {}
        assert await make_validator().validate(make_request(cover_image_url="")) == {}


class TestStoreBackedRules:

    @pytest.mark.asyncio
    async def test_existing_isbn_is_checked_on_raw_value(self):
        lookup = FakeBookLookup(isbns={"978-0-13-235088-4"})

        errors = await make_validator(lookup).validate(make_request())
        assert errors == {"isbn": ["ISBN already exists in the system."]}

        errors = await make_validator(lookup).validate(make_request(isbn="9780132350884"))
        assert errors == {}

    @pytest.mark.asyncio
    async def test_title_author_pair_must_be_unique(self):
        lookup = FakeBookLookup(title_authors={("Clean Architecture Notes", "Robert Martin")})

        errors = await make_validator(lookup).validate(make_request())
        assert errors == {
            "title": ["A book with this title already exists for this author."]
        }

        assert await make_validator(lookup).validate(make_request(author="Robert Cecil")) == {}

    @pytest.mark.asyncio
    async def test_daily_limit_is_checked_twice(self):
        lookup = FakeBookLookup(created_today=500)

        errors = await make_validator(lookup).validate(make_request())

        assert errors == {
            REQUEST_FIELD: [
                "Business validation rules failed.",
                "Daily book addition limit (500) reached.",
            ]
        }
        assert lookup.count_calls == 2

    @pytest.mark.asyncio
    async def test_daily_limit_below_threshold(self):
        lookup = FakeBookLookup(created_today=499)

        assert await make_validator(lookup).validate(make_request()) == {}


class TestCategoryRules:

    @pytest.mark.asyncio
    async def test_technical_minimum_price(self):
        errors = await make_validator().validate(
            make_request(category="Technical", price=Decimal("19.99"))
        )

        assert errors == {
            REQUEST_FIELD: ["Business validation rules failed."],
            "price": ["Technical books must be at least $20.00."],
        }

    @pytest.mark.asyncio
    async def test_technical_books_must_be_recent(self):
        errors = await make_validator().validate(
            make_request(category="Technical", published_date=FIXED_NOW - timedelta(days=6 * 365))
        )

        assert errors == {
            "publishedDate": ["Technical books must be published within the last 5 years."]
        }

    @pytest.mark.asyncio
    async def test_children_price_and_title(self):
        errors = await make_validator().validate(
            make_request(category="Children", title="Blood Moon Bunny", price=Decimal("60"))
        )

        assert errors == {
            REQUEST_FIELD: ["Business validation rules failed."],
            "price": ["Children's books cannot exceed $50.00."],
            "title": ["Children's book title contains restricted words."],
        }

    @pytest.mark.asyncio
    async def test_children_blocklist_is_injectable(self):
        validator = make_validator(children_blocklist=["spider"])

        errors = await validator.validate(
            make_request(category="Children", title="The Spider Picnic")
        )

        assert errors["title"] == ["Children's book title contains restricted words."]

    @pytest.mark.asyncio
    async def test_fiction_author_minimum_length(self):
        errors = await make_validator().validate(make_request(category="Fiction", author="Al B"))
        assert errors == {
            "author": ["Fiction authors must provide full name (minimum 5 characters)."]
        }

        assert await make_validator().validate(make_request(category="Fiction", author="Ann B")) == {}

    @pytest.mark.asyncio
    async def test_fiction_rule_does_not_apply_to_other_categories(self):
        assert await make_validator().validate(make_request(author="Al B")) == {}

    @pytest.mark.asyncio
    async def test_category_accepts_numeric_code(self):
        request = make_request(category=2, price=Decimal("10"))

        assert request.resolved_category == BookCategory.TECHNICAL
        errors = await make_validator().validate(request)
        assert "Technical books must be at least $20.00." in errors["price"]


class TestCrossFieldRules:

    @pytest.mark.asyncio
    async def test_high_value_books_limit_stock(self):
        errors = await make_validator().validate(
            make_request(price=Decimal("150"), stock_quantity=25)
        )

        assert errors == {
            "stockQuantity": ["High-value books (> $100) are limited to 20 stock units."]
        }

    @pytest.mark.asyncio
    async def test_premium_books_fail_business_rules(self):
        errors = await make_validator().validate(
            make_request(price=Decimal("600"), stock_quantity=15)
        )

        assert errors == {
            REQUEST_FIELD: ["Business validation rules failed."],
            "stockQuantity": ["High-value books (> $100) are limited to 20 stock units."],
        }

    @pytest.mark.asyncio
    async def test_premium_books_within_limits(self):
        errors = await make_validator().validate(
            make_request(price=Decimal("600"), stock_quantity=10)
        )

        assert errors == {}


class TestValidateOrRaise:

    @pytest.mark.asyncio
    async def test_raises_with_field_messages(self):
        with pytest.raises(BookValidationError) as exc_info:
            await make_validator().validate_or_raise(make_request(price=Decimal("-5")))

        assert exc_info.value.errors == {"price": ["Price must be greater than 0."]}


class TestHelpers:

    def test_isbn_helper(self):
        assert is_valid_isbn("0-306-40615-2")
        assert is_valid_isbn("978 0 306 40615 7")
        assert not is_valid_isbn("12345678X0")
        assert not is_valid_isbn("")

    def test_image_url_helper(self):
        assert is_valid_image_url("HTTP://COVERS.EXAMPLE.COM/A.JPG")
        assert is_valid_image_url("https://x.com/img.webp")
        assert not is_valid_image_url("https://x.com/img.bmp")
        assert not is_valid_image_url("/relative/path.png")

    def test_years_before_handles_leap_day(self):
        leap_day = datetime(2024, 2, 29, tzinfo=timezone.utc)

        assert years_before(leap_day, 5) == datetime(2019, 2, 28, tzinfo=timezone.utc)


class TestStorageBounds:

    @pytest.mark.asyncio
    async def test_spaced_isbn_longer_than_column(self):
        spaced = "9 7 8 0 1 3 2 3 5 0 8 8 4"
        assert is_valid_isbn(spaced)

        errors = await make_validator().validate(make_request(isbn=spaced))

        assert errors == {"isbn": ["ISBN cannot exceed 20 characters."]}

    @pytest.mark.asyncio
    async def test_hyphenated_isbn_within_column(self):
        assert await make_validator().validate(make_request(isbn="978-0-13-235088-4")) == {}

    @pytest.mark.asyncio
    async def test_cover_image_url_longer_than_column(self):
        url = "https://covers.example.com/" + "a" * 480 + ".jpg"

        errors = await make_validator().validate(make_request(cover_image_url=url))

        assert errors == {
            "coverImageUrl": ["Cover Image URL cannot exceed 500 characters."]
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("price", ["0.001", "9999.999", "19.995"])
    async def test_price_with_sub_cent_digits(self, price):
        errors = await make_validator().validate(make_request(price=Decimal(price)))

        assert errors["price"] == ["Price cannot have more than 2 decimal places."]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("price", ["25", "25.5", "25.50", "25.500"])
    async def test_price_with_cents_or_fewer(self, price):
        assert await make_validator().validate(make_request(price=Decimal(price))) == {}

    @pytest.mark.asyncio
    async def test_non_ascii_digit_category(self):
        request = make_request(category="²")

        assert request.resolved_category is None
        errors = await make_validator().validate(request)
        assert errors == {"category": ["Invalid book category."]}

    def test_price_precision_helper(self):
        assert has_price_precision(Decimal("40.00"))
        assert has_price_precision(Decimal("1E+3"))
        assert not has_price_precision(Decimal("0.001"))
