"""Startup resolution of the CSRF and JWT secrets.

``build_security_config`` is called exactly once by the application factory.
It applies the secret policy (environment value, development fallback or
fatal exit) and returns an immutable ``SecurityConfig`` that is injected
into the CSRF codec and the token service. Nothing in this module keeps
secrets at module scope.
"""

import logging
import re
import secrets
from dataclasses import dataclass, field
from typing import NoReturn

from wellness_api.core.config import Settings

logger = logging.getLogger(__name__)

# Fixed so that every worker of a development server agrees on the secret
DEV_JWT_SECRET = "dev-secret-key-wellness-api-2024"

MIN_JWT_SECRET_LENGTH = 32

# Case-insensitive substrings that mark a production JWT secret as weak
WEAK_SECRET_PATTERNS = [
    "development-secret-key",
    "dev-secret",
    "secret",
    "jwt-secret",
    "change-me",
    "changeme",
    "admin",
    "password",
    "wellness",
    "sphyra",
]

DEFAULT_JWT_EXPIRES_IN = "7d"
EXPIRES_IN_PATTERN = re.compile(r"^\d+[smhd]$")

CSRF_SECRET_BYTES = 32

_GENERATE_HINT = 'Generate one with: python -c "import secrets; print(secrets.token_urlsafe(48))"'


@dataclass(frozen=True)
class SecurityConfig:
    """Process-wide secrets and token policy, read-only after startup."""

    csrf_secret: bytes = field(repr=False)
    jwt_secret: str = field(repr=False)
    jwt_expires_in: str = DEFAULT_JWT_EXPIRES_IN
    jwt_algorithm: str = "HS256"
    is_production: bool = False


def find_weak_secret_patterns(secret: str) -> list[str]:
    """Return the blocklisted substrings contained in ``secret``."""
    lowered = secret.lower()
    return [pattern for pattern in WEAK_SECRET_PATTERNS if pattern in lowered]


def _abort(errors: list[str]) -> NoReturn:
    for error in errors:
        logger.error(f"STARTUP FATAL: {error}")
    raise SystemExit(
        "Startup aborted due to configuration errors. "
        f"Fix the {len(errors)} error(s) above and restart."
    )


def resolve_jwt_secret(settings: Settings) -> str:
    """Apply the JWT secret policy.

    - JWT_SECRET set: use it (in production it must also be strong).
    - Not set outside production: use ``DEV_JWT_SECRET`` and warn.
    - Not set in production: abort with exit status 1.
    """
    secret = settings.jwt_secret

    if not secret:
        if settings.is_production:
            _abort([f"JWT_SECRET environment variable is not set. {_GENERATE_HINT}"])
        logger.warning("Using the default development JWT_SECRET; set JWT_SECRET for production")
        return DEV_JWT_SECRET

    if settings.is_production:
        errors: list[str] = []
        if len(secret) < MIN_JWT_SECRET_LENGTH:
            errors.append(
                f"JWT_SECRET must be at least {MIN_JWT_SECRET_LENGTH} characters, "
                f"got {len(secret)}. {_GENERATE_HINT}"
            )
        weak = find_weak_secret_patterns(secret)
        if weak:
            errors.append(
                f"JWT_SECRET contains a common/default value ({', '.join(weak)}). {_GENERATE_HINT}"
            )
        if errors:
            _abort(errors)

    return secret


def validate_expires_in(value: str | None, is_production: bool = False) -> str:
    """Return ``value`` if it looks like ``<digits><s|m|h|d>``, else the 7d default."""
    if value and EXPIRES_IN_PATTERN.match(value):
        return value

    message = (
        f"Invalid JWT_EXPIRES_IN value {value!r}: expected e.g. 30m, 12h or 7d. "
        f"Falling back to {DEFAULT_JWT_EXPIRES_IN}"
    )
    if is_production:
        logger.error(message)
    else:
        logger.warning(message)
    return DEFAULT_JWT_EXPIRES_IN


def resolve_csrf_secret(settings: Settings) -> bytes:
    """Return the pinned CSRF secret, or a random one for this process."""
    if settings.csrf_secret:
        return settings.csrf_secret.encode("utf-8")

    logger.info(
        "CSRF_SECRET not set; generated a per-process secret "
        "(tokens are not portable across restarts or replicas)"
    )
    return secrets.token_bytes(CSRF_SECRET_BYTES)


def build_security_config(settings: Settings) -> SecurityConfig:
    """Build the immutable security configuration, exiting on fatal problems."""
    jwt_secret = resolve_jwt_secret(settings)
    config = SecurityConfig(
        csrf_secret=resolve_csrf_secret(settings),
        jwt_secret=jwt_secret,
        jwt_expires_in=validate_expires_in(settings.jwt_expires_in, settings.is_production),
        jwt_algorithm=settings.jwt_algorithm,
        is_production=settings.is_production,
    )

    if settings.is_production:
        logger.info("JWT configuration: production mode, secret validated")
    else:
        logger.info("JWT configuration: development mode")

    return config
