"""Middleware module for the Wellness API."""

from wellness_api.middleware.csrf import CSRFTokenMiddleware
from wellness_api.middleware.rate_limit import RateLimitMiddleware, rate_limit_cleanup_loop
from wellness_api.middleware.request_logger import RequestLoggingMiddleware
from wellness_api.middleware.security_headers import SecurityHeadersMiddleware

__all__ = [
    "CSRFTokenMiddleware",
    "RateLimitMiddleware",
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
    "rate_limit_cleanup_loop",
]
