import logging
import os
import sys
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypedDict

ASYNC_DATABASE_SCHEMES = ('postgresql+asyncpg://', 'sqlite+aiosqlite://')
REDIS_SCHEMES = ('redis://', 'rediss://', 'unix://')
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


@dataclass(frozen=True)
class SettingCheck:
    """One environment variable check.

    ``required`` checks report a missing value; the others only inspect a
    value that is present. ``production_only`` checks are skipped elsewhere.
    """

    setting: str
    description: str
    check: Callable[[str], bool]
    error: str
    required: bool = False
    production_only: bool = False


def _in_range(low: int, high: int) -> Callable[[str], bool]:
    def check(value: str) -> bool:
        try:
            return low <= int(value) <= high
        except ValueError:
            return False
    return check


def _has_words(value: str) -> bool:
    return any(word.strip() for word in value.split(','))


class ValidationResult(TypedDict):
    environment: str
    errors: list[str]
    warnings: list[str]
    valid: bool


class EnvironmentValidator:

    # A failure here stops the application.
    CRITICAL_CHECKS: tuple[SettingCheck, ...] = (
        SettingCheck(
            'DATABASE_URL',
            'Database connection URL',
            lambda v: v.startswith(ASYNC_DATABASE_SCHEMES),
            'DATABASE_URL must use an async driver (postgresql+asyncpg:// or sqlite+aiosqlite:///)',
            required=True,
        ),
        SettingCheck(
            'DEBUG',
            'Debug mode setting',
            lambda v: v.lower() != 'true',
            'DEBUG must be false in production environment',
            production_only=True,
        ),
    )

    # A failure here is reported and startup continues.
    ADVISORY_CHECKS: tuple[SettingCheck, ...] = (
        SettingCheck(
            'REDIS_URL',
            'Cache server URL',
            lambda v: v.startswith(REDIS_SCHEMES),
            'REDIS_URL must be a redis:// or rediss:// URL',
            required=True,
            production_only=True,
        ),
        SettingCheck(
            'SENTRY_DSN',
            'Error monitoring DSN',
            lambda v: v.startswith('https://'),
            'SENTRY_DSN should be configured for production monitoring',
            required=True,
            production_only=True,
        ),
        SettingCheck(
            'LOG_LEVEL',
            'Root log level',
            lambda v: v.upper() in LOG_LEVELS,
            f"LOG_LEVEL should be one of {', '.join(LOG_LEVELS)}",
        ),
        SettingCheck(
            'RATE_LIMIT_PER_MINUTE',
            'Requests per client per minute',
            _in_range(1, 10000),
            'RATE_LIMIT_PER_MINUTE should be a number between 1 and 10000',
        ),
        SettingCheck(
            'DAILY_BOOK_LIMIT',
            'Books accepted per UTC day',
            _in_range(1, 100000),
            'DAILY_BOOK_LIMIT should be a number between 1 and 100000',
        ),
        SettingCheck(
            'TITLE_BLOCKLIST',
            'Words rejected in any title',
            _has_words,
            'TITLE_BLOCKLIST is empty; titles will not be screened',
        ),
        SettingCheck(
            'CHILDREN_TITLE_BLOCKLIST',
            "Words rejected in children's titles",
            _has_words,
            "CHILDREN_TITLE_BLOCKLIST is empty; children's titles will not be screened",
        ),
    )

    @staticmethod
    def _failure(check: SettingCheck, environment: str) -> str | None:
        if check.production_only and environment != 'production':
            return None

        value = os.getenv(check.setting)
        if value is None or value == '':
            if check.required:
                return f"{check.setting} is required: {check.description}"
            return None

        if not check.check(value):
            return f"{check.setting}: {check.error}"
        return None

    @classmethod
    def validate_environment(cls) -> ValidationResult:
        environment = os.getenv('ENVIRONMENT', 'development').lower()

        errors: list[str] = []
        warnings: list[str] = []

        for check in cls.CRITICAL_CHECKS:
            failure = cls._failure(check, environment)
            if failure:
                errors.append(f"❌ {failure}")

        for check in cls.ADVISORY_CHECKS:
            failure = cls._failure(check, environment)
            if failure:
                warnings.append(f"⚠️ {failure}")

        return ValidationResult(
            environment=environment,
            errors=errors,
            warnings=warnings,
            valid=not errors
        )

    @classmethod
    def validate_or_exit(cls) -> None:
        if any('alembic' in arg for arg in sys.argv):
            logging.getLogger(__name__).info("Skipping configuration validation for alembic")
            return

        result = cls.validate_environment()

        print("🔧 Book Catalog configuration")
        print("=" * 50)
        print(f"Environment: {result['environment'].upper()}")

        for warning in result['warnings']:
            print(f"  {warning}")

        if not result['valid']:
            for error in result['errors']:
                print(f"  {error}")

            print("\n💡 Copy .env.example to .env and set DATABASE_URL,")
            print("   e.g. sqlite+aiosqlite:///./books.db")
            sys.exit(1)

        print("✅ Configuration valid")
