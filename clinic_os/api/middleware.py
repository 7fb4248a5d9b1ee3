"""API middleware for authentication and logging."""

import hmac
import logging
import time
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from clinic_os.core.auth import decode_token
from clinic_os.core.messages import message_for

logger = logging.getLogger(__name__)


def _client_host(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request with its status and duration; sets ``X-Process-Time``."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        logger.info(
            "%s %s -> %d in %.3fs client=%s",
            request.method, request.url.path, response.status_code, elapsed, _client_host(request),
        )
        response.headers["X-Process-Time"] = f"{elapsed:.3f}"
        return response


class APIKeyMiddleware(BaseHTTPMiddleware):
    """Requires a static API key unless the caller presents a valid JWT."""

    skip_paths = ("/health", "/health/ready", "/health/live", "/docs", "/openapi.json")

    def __init__(self, app, api_key: str):
        super().__init__(app)
        self.api_key = api_key

    def _is_authorized(self, request: Request) -> bool:
        auth_header = request.headers.get("Authorization") or ""
        bearer = auth_header[7:] if auth_header.startswith("Bearer ") else None
        if bearer:
            claims = decode_token(bearer)
            if claims and claims.get("type") == "access":
                return True

        provided_key = request.headers.get("X-API-Key") or bearer
        return bool(provided_key) and hmac.compare_digest(provided_key, self.api_key)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if path in self.skip_paths or path.startswith("/api/v1/auth/"):
            return await call_next(request)

        if not self._is_authorized(request):
            logger.warning(
                "Unauthorized request: %s %s client=%s", request.method, path, _client_host(request)
            )
            return JSONResponse(
                status_code=401,
                content={
                    "success": False,
                    "error": {"code": "UNAUTHORIZED", "message": message_for("UNAUTHORIZED").model_dump()},
                },
            )

        return await call_next(request)
