"""Health check endpoint.

Accessible without authentication; reports process liveness only.
"""

import time
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request

from wellness_api.core.errors import success_response

router = APIRouter(tags=["health"])

_STARTED_AT = time.monotonic()


@router.get("/health")
async def health_check(request: Request) -> dict[str, Any]:
    """Report service status, version and uptime."""
    return success_response(
        {
            "status": "healthy",
            "version": request.app.state.settings.app_version,
            "timestamp": datetime.now(UTC).isoformat(),
            "uptime": round(time.monotonic() - _STARTED_AT, 1),
        }
    )
