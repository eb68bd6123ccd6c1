"""Pydantic schemas for the Wellness API."""

from wellness_api.schemas.auth import (
    CSRFTokenData,
    Identity,
    Role,
    TokenData,
    TokenPayload,
    TokenRequest,
)

__all__ = [
    "CSRFTokenData",
    "Identity",
    "Role",
    "TokenData",
    "TokenPayload",
    "TokenRequest",
]
