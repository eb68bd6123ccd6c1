"""Token services for the Wellness API."""

from wellness_api.services.auth import (
    AuthError,
    InvalidTokenError,
    TokenError,
    TokenExpiredError,
    TokenService,
    parse_expires_in,
)
from wellness_api.services.csrf import CSRFTokenCodec
from wellness_api.services.signing import sign, signatures_match

__all__ = [
    "AuthError",
    "CSRFTokenCodec",
    "InvalidTokenError",
    "TokenError",
    "TokenExpiredError",
    "TokenService",
    "parse_expires_in",
    "sign",
    "signatures_match",
]
