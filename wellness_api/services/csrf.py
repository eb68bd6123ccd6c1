"""Stateless CSRF tokens.

A token is ``nonce:timestamp:signature`` where ``nonce`` is 32 random bytes in
hex, ``timestamp`` the issuance time in milliseconds since the epoch and
``signature`` the HMAC-SHA256 of ``nonce:timestamp`` under the process CSRF
secret. Nothing is stored server side: any process holding the same secret
can validate a token, and a token stays reusable until it expires.
"""

import secrets
import time
from collections.abc import Callable

from wellness_api.services.signing import sign, signatures_match

# 15 minutes
TOKEN_EXPIRY_MS = 15 * 60 * 1000

NONCE_BYTES = 32
# Epoch milliseconds have 13 digits; longer strings can exceed int() limits
MAX_TIMESTAMP_DIGITS = 15
CSRF_HEADER = "X-CSRF-Token"
CSRF_FORM_FIELD = "_csrf"


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class CSRFTokenCodec:
    """Issues and validates CSRF tokens for one secret."""

    def __init__(
        self,
        secret: bytes,
        expiry_ms: int = TOKEN_EXPIRY_MS,
        clock: Callable[[], int] | None = None,
    ) -> None:
        if not secret:
            raise ValueError("CSRF secret must not be empty")
        self._secret = secret
        self.expiry_ms = expiry_ms
        self._clock = clock or _now_ms

    def _signature(self, nonce: str, timestamp: str) -> str:
        return sign(f"{nonce}:{timestamp}".encode("ascii"), self._secret)

    def generate(self) -> str:
        """Create a new token."""
        nonce = secrets.token_hex(NONCE_BYTES)
        timestamp = str(self._clock())
        return f"{nonce}:{timestamp}:{self._signature(nonce, timestamp)}"

    def validate(self, token: object) -> bool:
        """Return True if ``token`` is well formed, unexpired and correctly signed.

        Never raises: anything malformed is simply invalid.
        """
        if not isinstance(token, str) or not token:
            return False

        parts = token.split(":")
        if len(parts) != 3:
            return False
        nonce, timestamp, signature = parts

        if len(timestamp) > MAX_TIMESTAMP_DIGITS:
            return False
        # str.isdigit() accepts non-ASCII digits, which int() would also parse
        if not (timestamp.isascii() and timestamp.isdigit()):
            return False
        if not nonce.isascii():
            return False

        if self._clock() - int(timestamp) > self.expiry_ms:
            return False

        return signatures_match(self._signature(nonce, timestamp), signature)
