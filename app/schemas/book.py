import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.models.book import BookCategory
from app.utils.datetime_utils import ensure_utc


class BookCreate(BaseModel):
    """Incoming creation request. Business rules live in the validation engine,
    so this model only enforces JSON types."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str
    author: str
    isbn: str
    category: str = Field(..., description="Category name or numeric code")
    price: Decimal
    published_date: datetime
    cover_image_url: str | None = None
    stock_quantity: int = 1

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category_code(cls, v: object) -> object:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("published_date")
    @classmethod
    def normalize_published_date(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def resolved_category(self) -> BookCategory | None:
        return BookCategory.parse(self.category)


class BookProfile(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: uuid.UUID
    title: str
    author: str
    isbn: str
    category_display_name: str
    price: Decimal
    formatted_price: str
    published_date: datetime
    created_at: datetime
    cover_image_url: str | None = None
    is_available: bool
    stock_quantity: int
    published_age: str
    author_initials: str
    availability_status: str
