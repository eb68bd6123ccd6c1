"""Attach a fresh CSRF token to outgoing responses.

The frontend reads ``X-CSRF-Token`` from any response and echoes it on its
next mutating request. Validation lives in ``wellness_api.api.deps``.
"""

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from wellness_api.services.csrf import CSRF_HEADER, CSRFTokenCodec


class CSRFTokenMiddleware(BaseHTTPMiddleware):
    """Set ``X-CSRF-Token`` on every response, or on responses under ``include_paths``.

    The codec defaults to ``app.state.csrf_codec``; never blocks a request.
    """

    def __init__(
        self,
        app: ASGIApp,
        codec: CSRFTokenCodec | None = None,
        include_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.codec = codec
        self.include_paths = include_paths

    def _applies_to(self, path: str) -> bool:
        if self.include_paths is None:
            return True
        # Segment-boundary match: "/api" covers "/api/x" but not "/apix"
        return any(
            path == prefix or path.startswith(prefix.rstrip("/") + "/")
            for prefix in self.include_paths
        )

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)

        if self._applies_to(request.url.path):
            codec = self.codec or request.app.state.csrf_codec
            response.headers[CSRF_HEADER] = codec.generate()

        return response
