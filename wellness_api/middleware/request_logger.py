"""HTTP request/response logging middleware."""

import logging
import time
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from wellness_api.core.request_utils import get_client_ip

logger = logging.getLogger(__name__)

REDACTED = "***REDACTED***"

# Compared case-insensitively
SENSITIVE_FIELDS = frozenset(
    field.lower()
    for field in (
        "password",
        "passwordHash",
        "newPassword",
        "oldPassword",
        "currentPassword",
        "token",
        "accessToken",
        "refreshToken",
        "confirmationToken",
        "confirmationTokenHash",
        "authorization",
        "apiKey",
        "secret",
        "privateKey",
        "_csrf",
        "csrfToken",
    )
)


def sanitize_sensitive_data(data: Any) -> Any:
    """Return a copy of ``data`` with sensitive keys redacted at any depth."""
    if isinstance(data, dict):
        return {
            key: (
                REDACTED
                if str(key).lower() in SENSITIVE_FIELDS
                else sanitize_sensitive_data(value)
            )
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [sanitize_sensitive_data(item) for item in data]
    return data


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each request with its status and duration; query strings are redacted."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - start) * 1000, 1)

        user = getattr(request.state, "user", None)
        extra = {
            "method": request.method,
            "path": request.url.path,
            "query": sanitize_sensitive_data(dict(request.query_params)),
            "ip": get_client_ip(request),
            "user_agent": request.headers.get("user-agent"),
            "status": response.status_code,
            "duration_ms": duration_ms,
            "user_id": user.id if user is not None else None,
        }

        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        logger.log(
            level,
            f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms}ms)",
            extra=extra,
        )
        return response
