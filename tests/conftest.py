"""Pytest configuration and fixtures for Wellness API tests."""

import os
from collections.abc import Callable

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing app modules
os.environ["NODE_ENV"] = "test"
os.environ["JWT_SECRET"] = "test-jwt-key-0123456789abcdefghijklmnop"
os.environ["CSRF_SECRET"] = "test-csrf-key-0123456789abcdefghijklmn"
# Set high rate limit for tests to prevent 429 errors
os.environ["RATE_LIMIT_REQUESTS_PER_MINUTE"] = "10000"

from wellness_api.core.config import Settings  # noqa: E402
from wellness_api.core.security import SecurityConfig  # noqa: E402
from wellness_api.main import create_app  # noqa: E402
from wellness_api.schemas.auth import Role, TokenPayload  # noqa: E402
from wellness_api.services.auth import TokenService  # noqa: E402
from wellness_api.services.csrf import CSRFTokenCodec  # noqa: E402

TEST_JWT_SECRET = "test-jwt-key-0123456789abcdefghijklmnop"
TEST_CSRF_SECRET = b"test-csrf-key-0123456789abcdefghijklmn"


# --- Rate Limiter Reset Fixture ---


def _reset_rate_limiter_state():
    """Reset rate limiter state for tests.

    Middleware instances keep a reference to the singleton, so the buckets
    are cleared in place and the limits raised instead of replacing it.
    """
    from wellness_api.middleware.rate_limit import DEFAULT_RULES, RateLimiter, RateLimitRule

    limiter = RateLimiter.get_instance()
    limiter._buckets.clear()

    relaxed = RateLimitRule(per_minute=10000, per_hour=100000, burst=1000)
    limiter.rules = {prefix: relaxed for prefix in DEFAULT_RULES}
    limiter.default_rule = relaxed


@pytest.fixture(autouse=True)
def reset_rate_limiter(request):
    """Reset rate limiter before each test to avoid 429 errors.

    Tests marked with pytest.mark.skip_rate_limiter_reset skip this fixture.
    """
    if request.node.get_closest_marker("skip_rate_limiter_reset"):
        yield
        return

    _reset_rate_limiter_state()
    yield
    _reset_rate_limiter_state()


# --- Configuration Fixtures ---


@pytest.fixture
def test_settings() -> Settings:
    """Settings for a test deployment, independent of any .env file."""
    return Settings(
        _env_file=None,
        environment="test",
        jwt_secret=TEST_JWT_SECRET,
        csrf_secret=TEST_CSRF_SECRET.decode(),
        rate_limit_requests_per_minute=10000,
    )


@pytest.fixture
def security_config() -> SecurityConfig:
    """Pinned secrets so tokens are reproducible across fixtures."""
    return SecurityConfig(
        csrf_secret=TEST_CSRF_SECRET,
        jwt_secret=TEST_JWT_SECRET,
        jwt_expires_in="7d",
    )


@pytest.fixture
def csrf_codec(security_config) -> CSRFTokenCodec:
    return CSRFTokenCodec(security_config.csrf_secret)


@pytest.fixture
def token_service(security_config) -> TokenService:
    return TokenService(security_config)


# --- Application Fixtures ---


@pytest.fixture
def app(test_settings, security_config):
    """Fresh application instance wired with the test secrets."""
    return create_app(test_settings, security_config)


@pytest.fixture
def client(app):
    """Test client for the full application."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_token(token_service) -> Callable[..., str]:
    """Issue a token for an arbitrary identity."""

    def _make(user_id: str = "u1", username: str = "alice", role: Role = Role.ADMIN) -> str:
        return token_service.issue(TokenPayload(id=user_id, username=username, role=role))

    return _make


@pytest.fixture
def admin_headers(make_token) -> dict[str, str]:
    """Authorization header for an admin caller."""
    return {"Authorization": f"Bearer {make_token('u1', 'alice', Role.ADMIN)}"}


@pytest.fixture
def staff_headers(make_token) -> dict[str, str]:
    """Authorization header for a staff caller."""
    return {"Authorization": f"Bearer {make_token('u2', 'bob', Role.STAFF)}"}
