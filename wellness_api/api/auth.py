"""Authentication API endpoints.

- ``GET /api/auth/csrf-token``: hand a CSRF token to clients that cannot read
  response headers (every response also carries ``X-CSRF-Token``).
- ``POST /api/auth/token``: admins mint identity tokens for staff accounts.
  The first admin token comes from ``wellness-api issue-token``.
- ``GET /api/auth/verify``: echo the caller's identity.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request, status

from wellness_api.api.deps import get_csrf_codec, get_token_service, protected
from wellness_api.core.errors import ApiError, success_response
from wellness_api.schemas.auth import (
    CSRFTokenData,
    Identity,
    Role,
    TokenData,
    TokenPayload,
    TokenRequest,
)
from wellness_api.services.auth import TokenService
from wellness_api.services.csrf import CSRFTokenCodec

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/csrf-token")
async def get_csrf_token(codec: CSRFTokenCodec = Depends(get_csrf_codec)) -> dict[str, Any]:
    """Issue a CSRF token in the response body."""
    data = CSRFTokenData(csrf_token=codec.generate(), expires_in_seconds=codec.expiry_ms // 1000)
    return success_response(data.model_dump(by_alias=True))


@router.post(
    "/token",
    status_code=status.HTTP_200_OK,
    dependencies=protected(Role.ADMIN),
)
async def issue_token(
    body: TokenRequest,
    request: Request,
    tokens: TokenService = Depends(get_token_service),
) -> dict[str, Any]:
    """Issue a signed identity token for a user."""
    if not body.user_id or not body.username or not body.role:
        raise ApiError("userId, username, and role are required", status.HTTP_400_BAD_REQUEST)

    try:
        role = Role(body.role)
    except ValueError as e:
        allowed = ", ".join(r.value for r in Role)
        raise ApiError(
            f"Unknown role '{body.role}' (expected one of: {allowed})",
            status.HTTP_400_BAD_REQUEST,
        ) from e

    token = tokens.issue(TokenPayload(id=body.user_id, username=body.username, role=role))
    logger.info(f"Token issued for user {body.user_id} ({role.value}) by {request.state.user.id}")

    data = TokenData(token=token, expires_in=tokens.expires_in)
    return success_response(data.model_dump(by_alias=True), "Token generated successfully")


@router.get("/verify", dependencies=protected(csrf=False))
async def verify_token(request: Request) -> dict[str, Any]:
    """Return the identity carried by the caller's token."""
    identity: Identity = request.state.user
    return success_response(identity.model_dump(mode="json"))
