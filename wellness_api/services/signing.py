"""HMAC-SHA256 signing helpers."""

import hashlib
import hmac


def sign(message: bytes, secret: bytes) -> str:
    """Return the lowercase hex HMAC-SHA256 of ``message`` keyed by ``secret``."""
    return hmac.new(secret, message, hashlib.sha256).hexdigest()


def signatures_match(expected: str, provided: str) -> bool:
    """Compare two hex signatures in constant time.

    Non-ASCII input cannot be a valid hex signature and yields False instead
    of the TypeError ``hmac.compare_digest`` raises for it.
    """
    try:
        return hmac.compare_digest(expected.encode("ascii"), provided.encode("ascii"))
    except (UnicodeEncodeError, AttributeError):
        return False
