"""Request correlation and access logging.

Every HTTP request gets a correlation ID taken from ``X-Request-ID`` (or a
fresh UUID4 when the header is absent or not a UUID). The ID is bound to
the structlog context, echoed back on the response, and included in a
single ``http_request_completed`` log line that also carries the status,
the duration and, when the bearer middleware resolved one, the user ID.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import Callable

REQUEST_ID_HEADER = "X-Request-ID"

logger = logging.getLogger(__name__)

_request_id: ContextVar[str] = ContextVar("request_id", default="")


def get_request_id() -> str:
    """Return the correlation ID of the current request ("" outside one)."""
    return _request_id.get()


def _incoming_request_id(scope: dict[str, Any]) -> str | None:
    for name, value in scope.get("headers", []):
        if name.lower() != b"x-request-id":
            continue
        try:
            return str(uuid.UUID(value.decode("latin-1")))
        except ValueError:
            return None
    return None


def _principal_id(scope: dict[str, Any]) -> str | None:
    principal = scope.get("state", {}).get("principal")
    return str(principal.user_id) if principal is not None else None


class RequestContextMiddleware:
    """Pure ASGI middleware: correlation ID plus one access-log line per request.

    Registered last so it wraps the whole stack, including the bearer
    middleware's early 401 responses.
    """

    def __init__(self, app: Any) -> None:
        self.app = app

    async def __call__(
        self,
        scope: dict[str, Any],
        receive: Callable[..., Any],
        send: Callable[..., Any],
    ) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = _incoming_request_id(scope) or str(uuid.uuid4())
        # Outlives the ContextVar for the 500 handler, which runs outside this middleware.
        scope.setdefault("state", {})["request_id"] = request_id
        token = _request_id.set(request_id)
        structlog.contextvars.bind_contextvars(request_id=request_id)
        status_code = 500
        started = time.perf_counter()

        async def send_with_request_id(message: dict[str, Any]) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                headers = [*message.get("headers", []), (b"x-request-id", request_id.encode())]
                message = {**message, "headers": headers}
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            logger.info(
                "http_request_completed",
                extra={
                    "method": scope["method"],
                    "path": scope["path"],
                    "status_code": status_code,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                    "user_id": _principal_id(scope),
                },
            )
            _request_id.reset(token)
            structlog.contextvars.unbind_contextvars("request_id")
