"""JWT issuance and verification."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from jwt.exceptions import PyJWTError

from wellness_api.core.security import EXPIRES_IN_PATTERN, SecurityConfig
from wellness_api.schemas.auth import TokenPayload

_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


class AuthError(Exception):
    """Base authentication error."""

    pass


class TokenError(AuthError):
    """JWT token error."""

    pass


class TokenExpiredError(TokenError):
    """JWT token has expired."""

    pass


class InvalidTokenError(TokenError):
    """JWT token is invalid."""

    pass


def parse_expires_in(value: str) -> timedelta:
    """Convert ``30s``/``15m``/``12h``/``7d`` into a timedelta."""
    if not EXPIRES_IN_PATTERN.match(value):
        raise ValueError(f"Invalid expiry format: {value!r}")
    return timedelta(seconds=int(value[:-1]) * _UNIT_SECONDS[value[-1]])


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TokenService:
    """Signs and verifies identity tokens with the configured secret."""

    def __init__(
        self,
        config: SecurityConfig,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._secret = config.jwt_secret
        self._algorithm = config.jwt_algorithm
        self.expires_in = config.jwt_expires_in
        self._lifetime = parse_expires_in(config.jwt_expires_in)
        self._clock = clock or _utcnow

    @property
    def expires_in_seconds(self) -> int:
        return int(self._lifetime.total_seconds())

    def issue(self, payload: TokenPayload) -> str:
        """Create a signed token for ``payload``."""
        now = self._clock()
        claims = {
            "id": payload.id,
            "username": payload.username,
            "role": payload.role.value,
            "iat": now,
            "exp": now + self._lifetime,
        }
        token = jwt.encode(claims, self._secret, algorithm=self._algorithm)
        # PyJWT 2.x returns str; older type stubs may declare bytes
        return str(token)

    def verify(self, token: str) -> dict[str, Any]:
        """Verify signature and expiry and return the decoded claims."""
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except PyJWTError as e:
            raise InvalidTokenError(f"Invalid token: {e}") from e
