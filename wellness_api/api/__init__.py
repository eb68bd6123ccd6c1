"""API routes and request gates for the Wellness API."""

from wellness_api.api.deps import authenticate, protected, require_csrf_token, require_role
from wellness_api.api.router import api_router

__all__ = [
    "api_router",
    "authenticate",
    "protected",
    "require_csrf_token",
    "require_role",
]
