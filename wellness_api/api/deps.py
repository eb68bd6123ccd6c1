"""Request gates: CSRF validation, authentication and role checks.

The gates are FastAPI dependencies. Routers list them in the order they must
run, which FastAPI preserves::

    router = APIRouter(
        dependencies=[
            Depends(require_csrf_token),
            Depends(authenticate),
            Depends(require_role(Role.ADMIN)),
        ]
    )

Every rejection is an ``ApiError`` with status 401 or 403; no gate lets an
unexpected exception escape as a 5xx.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import Depends, Request, status
from pydantic import ValidationError

from wellness_api.core.errors import ApiError
from wellness_api.schemas.auth import Identity, Role, TokenPayload
from wellness_api.services.auth import TokenError, TokenService
from wellness_api.services.csrf import CSRF_FORM_FIELD, CSRF_HEADER, CSRFTokenCodec

logger = logging.getLogger(__name__)

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

_BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}


def get_csrf_codec(request: Request) -> CSRFTokenCodec:
    """Return the CSRF codec built by the application factory."""
    return request.app.state.csrf_codec


def get_token_service(request: Request) -> TokenService:
    """Return the token service built by the application factory."""
    return request.app.state.token_service


# --- CSRF ---


async def _read_body_token(request: Request) -> str | None:
    """Read ``_csrf`` from a form or JSON body, if there is one."""
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()

    try:
        if content_type in FORM_CONTENT_TYPES:
            form = await request.form()
            value = form.get(CSRF_FORM_FIELD)
        elif content_type == "application/json":
            body = await request.json()
            value = body.get(CSRF_FORM_FIELD) if isinstance(body, dict) else None
        else:
            return None
    except Exception as e:
        # Malformed or truncated bodies are treated as carrying no token
        logger.debug(f"Could not read CSRF field from request body: {e}")
        return None

    return value if isinstance(value, str) and value else None


async def require_csrf_token(
    request: Request,
    codec: CSRFTokenCodec = Depends(get_csrf_codec),
) -> None:
    """Reject mutating requests that lack a valid CSRF token."""
    if request.method in SAFE_METHODS:
        return

    token = request.headers.get(CSRF_HEADER) or await _read_body_token(request)

    if not token:
        logger.warning(f"CSRF token missing: {request.method} {request.url.path}")
        raise ApiError("CSRF token missing", status.HTTP_403_FORBIDDEN)

    if not codec.validate(token):
        logger.warning(f"Invalid CSRF token: {request.method} {request.url.path}")
        raise ApiError("Invalid or expired CSRF token", status.HTTP_403_FORBIDDEN)


# --- Authentication ---


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token of an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme != "Bearer" or not token or " " in token:
        return None
    return token


async def authenticate(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
) -> Identity:
    """Verify the bearer token and attach the caller to ``request.state.user``."""
    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        logger.debug(f"Request without bearer token: {request.method} {request.url.path}")
        raise ApiError(
            "Authentication required",
            status.HTTP_401_UNAUTHORIZED,
            headers=_BEARER_CHALLENGE,
        )

    try:
        claims = tokens.verify(token)
    except TokenError as e:
        logger.warning(f"Rejected token for {request.method} {request.url.path}: {e}")
        raise ApiError("Invalid or expired token", status.HTTP_403_FORBIDDEN) from e
    except Exception as e:
        # Fail closed on anything the JWT library did not anticipate
        logger.exception(f"Unexpected token verification failure on {request.url.path}")
        raise ApiError("Invalid or expired token", status.HTTP_403_FORBIDDEN) from e

    try:
        payload = TokenPayload.model_validate(claims)
    except ValidationError as e:
        logger.warning(f"Token payload failed validation on {request.url.path}")
        raise ApiError("Invalid token payload", status.HTTP_403_FORBIDDEN) from e

    identity = Identity(id=payload.id, role=payload.role)
    request.state.user = identity
    return identity


# --- Authorization ---


def require_role(*allowed_roles: Role | str) -> Callable[[Request], Awaitable[Identity]]:
    """Build a dependency that admits only callers holding one of ``allowed_roles``.

    Must be listed after ``authenticate``. Unknown role names raise
    ``ValueError`` when the route is declared.
    """
    if not allowed_roles:
        raise ValueError("require_role() needs at least one role")
    allowed = frozenset(Role(role) for role in allowed_roles)

    async def role_gate(request: Request) -> Identity:
        identity: Identity | None = getattr(request.state, "user", None)
        if identity is None:
            logger.error(f"Role check without an authenticated caller on {request.url.path}")
            raise ApiError(
                "Authentication required",
                status.HTTP_401_UNAUTHORIZED,
                headers=_BEARER_CHALLENGE,
            )

        if identity.role not in allowed:
            logger.warning(
                f"User {identity.id} with role {identity.role.value} denied on "
                f"{request.method} {request.url.path}"
            )
            raise ApiError("Insufficient permissions", status.HTTP_403_FORBIDDEN)

        return identity

    return role_gate


def protected(*roles: Role | str, csrf: bool = True) -> list[Any]:
    """Dependencies for a protected route, in gate order.

    ``protected()`` requires authentication only; ``protected(Role.ADMIN)``
    also requires the admin role. ``csrf=False`` leaves CSRF to the caller.
    """
    dependencies = [Depends(require_csrf_token)] if csrf else []
    dependencies.append(Depends(authenticate))
    if roles:
        dependencies.append(Depends(require_role(*roles)))
    return dependencies
