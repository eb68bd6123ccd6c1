"""Pydantic schemas for authentication."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, StrictStr


class Role(StrEnum):
    """Roles known to the backend."""

    ADMIN = "admin"
    STAFF = "staff"


class TokenPayload(BaseModel):
    """Identity claims carried by a JWT.

    ``iat``/``exp`` are handled by the token service and ignored here.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: StrictStr = Field(min_length=1)
    username: StrictStr = Field(min_length=1)
    role: Role


class Identity(BaseModel):
    """Authenticated caller, attached to ``request.state.user``."""

    model_config = ConfigDict(frozen=True)

    id: str
    role: Role


class TokenRequest(BaseModel):
    """Request body for ``POST /api/auth/token``."""

    user_id: str | None = Field(default=None, alias="userId")
    username: str | None = None
    role: str | None = None


class TokenData(BaseModel):
    """Issued token and its lifetime (e.g. ``7d``)."""

    model_config = ConfigDict(populate_by_name=True)

    token: str
    expires_in: str = Field(alias="expiresIn")


class CSRFTokenData(BaseModel):
    """Fresh CSRF token returned by ``GET /api/auth/csrf-token``."""

    model_config = ConfigDict(populate_by_name=True)

    csrf_token: str = Field(alias="csrfToken")
    expires_in_seconds: int = Field(alias="expiresInSeconds")
