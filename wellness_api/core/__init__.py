# Wellness API Core Module
from .config import Settings, get_settings, settings
from .errors import ApiError, error_response, register_exception_handlers, success_response
from .logging import setup_logging
from .security import SecurityConfig, build_security_config

__all__ = [
    "settings",
    "get_settings",
    "Settings",
    "setup_logging",
    "ApiError",
    "error_response",
    "success_response",
    "register_exception_handlers",
    "SecurityConfig",
    "build_security_config",
]
