from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from dotenv import load_dotenv
from pathlib import Path
from uuid import uuid4
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

env_path = Path(__file__).resolve().parent.parent / ".env"
_ = load_dotenv(dotenv_path=env_path)

from app.config import settings
from app.database import engine, redis_client
from app.core.exceptions import BookValidationError, DuplicateBookError
from app.core.logging import correlation_id_var
from app.core.middleware import (
    CORRELATION_ID_HEADER,
    PROCESS_TIME_HEADER,
    setup_middleware,
)
from app.core.sentry_helpers import capture_exception_with_context, set_request_context
from app.schemas.common import ConflictResponse, ErrorResponse, ValidationErrorResponse
from app.services.book_validation import REQUEST_FIELD
from app.api import books

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    logger.info("🚀 Book Catalog API starting up")

    if settings.DEBUG:
        logger.info("Running in debug mode - enhanced logging enabled")

    yield

    logger.info("🛑 Book Catalog API shutting down")

    try:
        await redis_client.aclose()
        await engine.dispose()
        logger.info("✅ Connections closed gracefully")
    except Exception as e:
        logger.error(f"❌ Shutdown error: {e}")


if settings.SENTRY_DSN:
    _ = sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        traces_sample_rate=1.0 if settings.DEBUG else 0.1,
        environment=settings.ENVIRONMENT,
        release=f"book-catalog@{settings.VERSION}",
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            StarletteIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        ignore_errors=[
            KeyboardInterrupt,
        ],
        send_default_pii=False,
        attach_stacktrace=True,
    )

    logger.info(f"✅ Sentry initialized for environment: {settings.ENVIRONMENT}")
else:
    logger.info("⚠️  Sentry DSN not configured - error tracking disabled")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    openapi_url="/api/openapi.json" if settings.DEBUG else None,
    lifespan=lifespan,
)

setup_middleware(app)

app.include_router(books.router, prefix="/api/books", tags=["books"])


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "version": settings.VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def _validation_response(errors: dict[str, list[str]]) -> JSONResponse:
    body = ValidationErrorResponse(errors=errors)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump()
    )


@app.exception_handler(BookValidationError)
async def book_validation_exception_handler(request: Request, exc: BookValidationError):
    return _validation_response(exc.errors)


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
):
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        location = [part for part in error.get("loc", ()) if part != "body"]
        # Undecodable JSON is reported at a character offset, not a field
        field = location[0] if location and isinstance(location[0], str) else REQUEST_FIELD
        errors.setdefault(field, []).append(error.get("msg", "Invalid value."))

    logger.warning(f"Malformed book request on {request.url.path}: {errors}")
    return _validation_response(errors)


@app.exception_handler(DuplicateBookError)
async def duplicate_book_exception_handler(request: Request, exc: DuplicateBookError):
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=ConflictResponse(detail=str(exc)).model_dump(),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    # Runs outside the http middleware, which has already reset the context var
    correlation_id = getattr(request.state, "correlation_id", None) or str(uuid4())
    token = correlation_id_var.set(correlation_id)
    try:
        logger.error(f"Unhandled exception: {exc}", exc_info=True)

        if settings.SENTRY_DSN:
            set_request_context(request)
            capture_exception_with_context(
                exc, context={"endpoint": {"path": str(request.url.path)}}
            )
    finally:
        correlation_id_var.reset(token)

    body = ErrorResponse(
        error="Internal server error",
        detail="An unexpected error occurred",
        timestamp=datetime.now(timezone.utc),
    )
    headers = {CORRELATION_ID_HEADER: correlation_id}
    started_at = getattr(request.state, "started_at", None)
    if started_at is not None:
        headers[PROCESS_TIME_HEADER] = str(time.time() - started_at)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=jsonable_encoder(body),
        headers=headers,
    )
