"""CORS middleware for the browser front end."""

from collections.abc import Callable
from typing import Any

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

ALLOWED_METHODS = "GET, POST, PUT, PATCH, OPTIONS"
ALLOWED_HEADERS = "Content-Type, Authorization"


class CORSMiddleware(BaseHTTPMiddleware):
    """Answers preflight requests and adds CORS headers for allowed origins.

    Origins come from `AppSettings.cors_origins`; `"*"` allows any origin.
    """

    def __init__(self, app: Callable[..., Any], allowed_origins: list[str]) -> None:
        super().__init__(app)
        self._allowed_origins = allowed_origins

    def is_origin_allowed(self, origin: str) -> bool:
        return "*" in self._allowed_origins or origin in self._allowed_origins

    async def dispatch(self, request: Request, call_next: Callable[..., Any]) -> Response:
        origin = request.headers.get("Origin")
        allowed = bool(origin) and self.is_origin_allowed(origin)

        if request.method == "OPTIONS" and "Access-Control-Request-Method" in request.headers:
            response = Response()
            if allowed:
                response.headers["Access-Control-Allow-Origin"] = origin
                response.headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
                response.headers["Access-Control-Allow-Headers"] = ALLOWED_HEADERS
                response.headers["Access-Control-Max-Age"] = "3600"
            return response

        response = await call_next(request)
        if allowed:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
        return response  # type: ignore[no-any-return]
