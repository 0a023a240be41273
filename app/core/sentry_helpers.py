import sentry_sdk
from fastapi import Request
from typing import Any

from app.core.logging import correlation_id_var


def set_request_context(request: Request):
    sentry_sdk.set_context(
        "request",
        {
            "url": str(request.url),
            "method": request.method,
            "query_params": dict(request.query_params),
        },
    )
    correlation_id = correlation_id_var.get()
    if correlation_id:
        sentry_sdk.set_tag("correlation_id", correlation_id)


def capture_exception_with_context(
    error: Exception, context: dict[str, Any] | None = None, level: str = "error"
):
    if context:
        for key, value in context.items():
            sentry_sdk.set_context(key, value)

    sentry_sdk.capture_exception(error, level=level)
