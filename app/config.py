from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
import os


def _get_database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if not url:
        raise ValueError("DATABASE_URL environment variable is required")
    return url


class Settings(BaseSettings):
    APP_NAME: str = "Book Catalog API"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    DATABASE_URL: str = Field(
        default_factory=_get_database_url, description="Database connection URL"
    )
    REDIS_URL: str = "redis://localhost:6379/0"

    CORS_ORIGINS: str = Field(
        default="http://localhost:3000,http://localhost:8080,http://127.0.0.1:3000",
        description="Comma-separated list of allowed origins",
    )

    RATE_LIMIT_PER_MINUTE: int = 60

    LOG_LEVEL: str = "INFO"
    SENTRY_DSN: str | None = None

    BOOKS_CACHE_KEY: str = "all_books"
    DAILY_BOOK_LIMIT: int = 500
    TITLE_BLOCKLIST: str = "badword,offensive,banned"
    CHILDREN_TITLE_BLOCKLIST: str = "violence,horror,adult,death,kill,blood"
    CURRENCY_SYMBOL: str = "$"

    DB_ECHO: bool = False

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=True, env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("CORS_ORIGINS")
    @classmethod
    def validate_cors_origins(cls, v: str) -> str:
        if not v:
            raise ValueError("CORS_ORIGINS cannot be empty")

        origins = [origin.strip() for origin in v.split(",")]
        for origin in origins:
            if not origin.startswith(("http://", "https://")):
                raise ValueError(
                    f"Invalid CORS origin format: {origin}. Must start with http:// or https://"
                )

        return v

    @field_validator("TITLE_BLOCKLIST", "CHILDREN_TITLE_BLOCKLIST")
    @classmethod
    def validate_blocklist(cls, v: str) -> str:
        if not [word for word in v.split(",") if word.strip()]:
            raise ValueError("Blocklists must contain at least one word")
        return v

    @field_validator("DAILY_BOOK_LIMIT")
    @classmethod
    def validate_daily_limit(cls, v: int) -> int:
        if v < 1:
            raise ValueError("DAILY_BOOK_LIMIT must be positive")
        return v

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def cors_origins_list(self) -> list[str]:
        return [
            origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()
        ]

    @property
    def title_blocklist(self) -> list[str]:
        return [w.strip().lower() for w in self.TITLE_BLOCKLIST.split(",") if w.strip()]

    @property
    def children_title_blocklist(self) -> list[str]:
        return [
            w.strip().lower()
            for w in self.CHILDREN_TITLE_BLOCKLIST.split(",")
            if w.strip()
        ]


settings = Settings()  # type: ignore[call-arg]


def _validate_settings() -> None:
    if not os.getenv("SKIP_CONFIG_VALIDATION"):
        from .core.config_validator import EnvironmentValidator

        EnvironmentValidator.validate_or_exit()


_validate_settings()
