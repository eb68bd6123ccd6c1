"""Wellness API configuration.

Settings are read from the environment (and an optional ``.env`` file) with
pydantic-settings. Secrets are kept here as plain values; turning them into
the immutable ``SecurityConfig`` used by the token services happens once in
``wellness_api.core.security.build_security_config``.
"""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Origins allowed outside production when ALLOWED_ORIGINS is not set
DEV_CORS_ORIGINS = ["http://localhost:5173", "http://localhost:3000"]

# Passwords (or fragments) that must never protect an admin or database account
WEAK_PASSWORDS = [
    "admin123",
    "password",
    "admin",
    "123456",
    "12345678",
    "password123",
    "admin1234",
    "user123",
    "changeme",
    "default",
    "root",
    "toor",
    "wellness",
]


def is_weak_password(password: str | None) -> bool:
    """Return True if a password is missing, short, common or low-complexity.

    A strong password has at least 12 characters and at least three of the
    four character classes (lowercase, uppercase, digits, symbols).
    """
    if not password:
        return True

    lowered = password.lower()
    if any(weak in lowered for weak in WEAK_PASSWORDS):
        return True

    if len(password) < 12:
        return True

    classes = [
        any(c.islower() for c in password),
        any(c.isupper() for c in password),
        any(c.isdigit() for c in password),
        any(not c.isalnum() for c in password),
    ]
    return sum(classes) < 3


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = "Wellness API"
    app_version: str = "2.0.0"

    # NODE_ENV is kept for deployments that share an env file with the frontend
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("NODE_ENV", "ENVIRONMENT"),
    )
    debug: bool = False

    log_level: str = "INFO"
    log_format: Literal["dev", "structured"] | None = None

    # JWT
    jwt_secret: str | None = Field(
        default=None,
        validation_alias=AliasChoices("JWT_SECRET", "JWT_SECRET_KEY"),
    )
    jwt_expires_in: str = "7d"
    jwt_algorithm: str = "HS256"

    # CSRF: random per process when unset
    csrf_secret: str | None = None

    # CORS, comma separated
    allowed_origins: str = ""

    rate_limit_enabled: bool = True
    rate_limit_requests_per_minute: int = Field(default=100, ge=1)

    # Only inspected by check_security_configuration
    admin_initial_password: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "ADMIN_INITIAL_PASSWORD", "VITE_ADMIN_INITIAL_PASSWORD"
        ),
    )
    postgres_password: str | None = None

    @field_validator("environment")
    @classmethod
    def normalize_environment(cls, v: str) -> str:
        # Anything other than "production" runs with development fallbacks
        return v.strip().lower() or "development"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        normalized = v.strip().upper()
        if normalized not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(VALID_LOG_LEVELS)}")
        return normalized

    @field_validator("jwt_secret", "csrf_secret", mode="before")
    @classmethod
    def empty_secret_is_unset(cls, v: str | None) -> str | None:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def effective_log_format(self) -> Literal["dev", "structured"]:
        if self.log_format is not None:
            return self.log_format
        return "structured" if self.is_production and not self.debug else "dev"

    @property
    def cors_origins_list(self) -> list[str]:
        origins = [o.strip() for o in self.allowed_origins.split(",") if o.strip()]
        if origins:
            return origins
        return [] if self.is_production else list(DEV_CORS_ORIGINS)

    def check_security_configuration(self) -> list[str]:
        """Return non-fatal security warnings for the current configuration.

        Fatal problems (missing or weak JWT secret in production) are handled
        by ``build_security_config``; everything here is only logged.
        """
        warnings: list[str] = []

        if self.admin_initial_password is None:
            if self.is_production:
                warnings.append("ADMIN_INITIAL_PASSWORD is not set")
        elif is_weak_password(self.admin_initial_password):
            warnings.append(
                "ADMIN_INITIAL_PASSWORD is weak: use at least 12 characters mixing "
                "upper/lowercase letters, digits and symbols"
            )

        if self.postgres_password is None:
            if self.is_production:
                warnings.append("POSTGRES_PASSWORD is not set")
        elif is_weak_password(self.postgres_password):
            warnings.append("POSTGRES_PASSWORD is weak")

        if self.is_production and not self.csrf_secret:
            warnings.append(
                "CSRF_SECRET is not set: each process generates its own secret, so "
                "CSRF tokens issued by one replica are rejected by the others"
            )

        if self.jwt_secret and self.csrf_secret and self.jwt_secret == self.csrf_secret:
            warnings.append("JWT_SECRET and CSRF_SECRET have the same value")

        if "*" in self.cors_origins_list:
            warnings.append("ALLOWED_ORIGINS contains '*' while credentials are allowed")

        if self.is_production and self.debug:
            warnings.append("DEBUG is enabled in production")

        return warnings


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


settings = get_settings()
