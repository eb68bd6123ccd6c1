"""Per-client rate limiting.

Every client IP gets one bucket per rule, where the rule is the longest
matching path prefix or the default. A bucket enforces two things:

- a burst allowance that refills at the per-minute rate;
- sliding one-minute and one-hour windows.

Counts live in process memory, so each replica limits its own clients.
"""

import asyncio
import logging
import math
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from wellness_api.core.errors import error_response
from wellness_api.core.request_utils import get_client_ip

logger = logging.getLogger(__name__)

MINUTE = 60.0
HOUR = 3600.0

RATE_LIMIT_MESSAGE = "Too many requests, please try again later."


@dataclass(frozen=True)
class RateLimitRule:
    """Limits applied to one path prefix."""

    per_minute: int
    per_hour: int
    burst: int

    @classmethod
    def scaled(cls, per_minute: int) -> "RateLimitRule":
        """Derive the hourly limit and burst allowance from a per-minute limit."""
        return cls(per_minute=per_minute, per_hour=per_minute * 20, burst=max(1, per_minute // 5))


# Token issuance is the brute-force target; /health allows a probe every 2s
DEFAULT_RULES: dict[str, RateLimitRule] = {
    "/api/auth/token": RateLimitRule(per_minute=10, per_hour=60, burst=5),
    "/health": RateLimitRule(per_minute=30, per_hour=600, burst=10),
}

DEFAULT_RULE = RateLimitRule(per_minute=100, per_hour=2000, burst=20)


@dataclass
class ClientBucket:
    """Hits and burst allowance for one client under one rule."""

    tokens: float
    refilled_at: float = field(default_factory=time.monotonic)
    # Monotonic timestamps of accepted hits within the last hour, oldest first
    hits: deque[float] = field(default_factory=deque)

    def forget_before(self, cutoff: float) -> None:
        while self.hits and self.hits[0] <= cutoff:
            self.hits.popleft()

    def hits_after(self, cutoff: float) -> list[float]:
        return [ts for ts in self.hits if ts > cutoff]

    @property
    def last_seen(self) -> float:
        return max(self.refilled_at, self.hits[-1]) if self.hits else self.refilled_at


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one rate limit check."""

    allowed: bool
    headers: dict[str, str]
    retry_after: int | None = None


def _prefix_matches(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")


class RateLimiter:
    """In-memory limiter shared by every middleware instance in the process."""

    _instance: Optional["RateLimiter"] = None
    _instance_lock = threading.Lock()

    def __init__(
        self,
        rules: dict[str, RateLimitRule] | None = None,
        default_rule: RateLimitRule = DEFAULT_RULE,
    ) -> None:
        self.rules = dict(DEFAULT_RULES if rules is None else rules)
        self.default_rule = default_rule
        self._buckets: dict[str, ClientBucket] = {}
        self._lock = asyncio.Lock()

    @classmethod
    def get_instance(cls) -> "RateLimiter":
        """Return the process-wide limiter, creating it on first use."""
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def set_default_limit(self, per_minute: int) -> None:
        """Set the per-minute limit for paths without a rule of their own."""
        self.default_rule = RateLimitRule.scaled(per_minute)

    def _matching_prefix(self, path: str) -> str | None:
        matches = [prefix for prefix in self.rules if _prefix_matches(path, prefix)]
        return max(matches, key=len) if matches else None

    def rule_for(self, path: str) -> RateLimitRule:
        prefix = self._matching_prefix(path)
        return self.rules[prefix] if prefix is not None else self.default_rule

    def bucket_key(self, client_ip: str, path: str) -> str:
        return f"{client_ip}:{self._matching_prefix(path) or 'default'}"

    async def hit(self, client_ip: str, path: str) -> RateLimitDecision:
        """Record a request from ``client_ip`` to ``path`` if it is within limits."""
        rule = self.rule_for(path)
        key = self.bucket_key(client_ip, path)

        async with self._lock:
            now = time.monotonic()
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = ClientBucket(tokens=float(rule.burst), refilled_at=now)
                self._buckets[key] = bucket

            bucket.forget_before(now - HOUR)
            last_minute = bucket.hits_after(now - MINUTE)

            headers = {
                "X-RateLimit-Limit": str(rule.per_minute),
                "X-RateLimit-Remaining": str(max(0, rule.per_minute - len(last_minute) - 1)),
                "X-RateLimit-Limit-Hour": str(rule.per_hour),
                "X-RateLimit-Remaining-Hour": str(max(0, rule.per_hour - len(bucket.hits) - 1)),
            }

            wait: float | None = None
            if len(last_minute) >= rule.per_minute:
                wait = last_minute[0] + MINUTE - now
            elif len(bucket.hits) >= rule.per_hour:
                wait = bucket.hits[0] + HOUR - now
            else:
                refill = (now - bucket.refilled_at) * rule.per_minute / MINUTE
                bucket.tokens = min(float(rule.burst), bucket.tokens + refill)
                bucket.refilled_at = now
                if bucket.tokens < 1.0:
                    wait = (1.0 - bucket.tokens) * MINUTE / rule.per_minute

            if wait is not None:
                retry_after = max(1, math.ceil(wait))
                headers["Retry-After"] = str(retry_after)
                headers["X-RateLimit-Reset"] = str(retry_after)
                return RateLimitDecision(allowed=False, headers=headers, retry_after=retry_after)

            bucket.tokens -= 1.0
            bucket.hits.append(now)
            return RateLimitDecision(allowed=True, headers=headers)

    async def stats(self) -> dict[str, dict]:
        """Per-bucket counters, keyed by ``<client ip>:<prefix|default>``."""
        async with self._lock:
            now = time.monotonic()
            return {
                key: {
                    "minute_count": len(bucket.hits_after(now - MINUTE)),
                    "hour_count": len(bucket.hits_after(now - HOUR)),
                    "tokens": round(bucket.tokens, 2),
                }
                for key, bucket in self._buckets.items()
            }

    async def reset(self, client_ip: str | None = None) -> None:
        """Forget every bucket, or only those of ``client_ip``."""
        async with self._lock:
            if client_ip is None:
                self._buckets.clear()
                return
            for key in [k for k in self._buckets if k.startswith(f"{client_ip}:")]:
                del self._buckets[key]

    async def prune_inactive(self, inactive_seconds: float = 86400) -> int:
        """Drop buckets of clients not seen for ``inactive_seconds``; return how many."""
        async with self._lock:
            cutoff = time.monotonic() - inactive_seconds
            stale = [key for key, bucket in self._buckets.items() if bucket.last_seen < cutoff]
            for key in stale:
                del self._buckets[key]

        if stale:
            logger.info(f"Pruned {len(stale)} inactive rate limit buckets")
        return len(stale)


def get_rate_limiter() -> RateLimiter:
    """Return the process-wide limiter."""
    return RateLimiter.get_instance()


async def rate_limit_cleanup_loop(
    interval_seconds: float = 3600,
    inactive_seconds: float = 86400,
) -> None:
    """Prune idle buckets every ``interval_seconds`` until cancelled."""
    limiter = get_rate_limiter()
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await limiter.prune_inactive(inactive_seconds)
        except Exception:
            logger.exception("Rate limiter cleanup failed")


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Reject clients over their limit with 429; tag other responses with limit headers."""

    def __init__(
        self,
        app: ASGIApp,
        requests_per_minute: int = 100,
        exclude_paths: list[str] | None = None,
        enabled: bool = True,
    ) -> None:
        super().__init__(app)
        self.exclude_paths = exclude_paths or []
        self.enabled = enabled
        self.limiter = get_rate_limiter()
        self.limiter.set_default_limit(requests_per_minute)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if not self.enabled or any(_prefix_matches(path, p) for p in self.exclude_paths):
            return await call_next(request)

        client_ip = get_client_ip(request)
        decision = await self.limiter.hit(client_ip, path)

        if not decision.allowed:
            logger.warning(f"Rate limit exceeded for {client_ip} on {path}")
            return error_response(
                RATE_LIMIT_MESSAGE,
                status.HTTP_429_TOO_MANY_REQUESTS,
                headers=decision.headers,
                retryAfter=decision.retry_after,
            )

        response = await call_next(request)
        response.headers.update(decision.headers)
        return response
