"""Request ID middleware — generates or propagates X-Request-Id.

Requests under ``/api/v1/users/{user_id}/`` also bind ``user_id`` so every
economy log line of the request names the player.
"""

import re
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

_USER_PATH = re.compile(r"^/api/v1/users/([^/]+)(?:/|$)")


def user_id_from_path(path: str) -> str | None:
    """Extract the user id from a per-user API path."""
    match = _USER_PATH.match(path)
    return match.group(1) if match else None


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Ensure every request has a unique X-Request-Id header."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Bind the request context to structlog and echo the id in the response."""
        request_id = request.headers.get("X-Request-Id", str(uuid.uuid4()))
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        user_id = user_id_from_path(request.url.path)
        if user_id is not None:
            structlog.contextvars.bind_contextvars(user_id=user_id)
        response = await call_next(request)
        response.headers["X-Request-Id"] = request_id
        return response
