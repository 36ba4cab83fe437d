"""Bearer credential middleware backed by the Auth Gate.

Resolves the credential on every request except excluded paths and stores
the resulting principal in the principal ContextVar (and on
``request.state.principal``) for downstream dependencies.

The credential is read from the ``Authorization`` header; when that
header is absent, the configured cookie is consulted instead. The header
value may carry a ``Bearer`` label or be the bare token.

Auth errors are returned as RFC 7807 problem responses directly rather
than raised, because BaseHTTPMiddleware dispatch cannot propagate
exceptions through the ASGI stack.

A path is excluded when it equals an excluded prefix or continues it after
a slash, so ``/health/ready`` is public and ``/healthz`` is not. Public-read
prefixes skip credential resolution for GET and HEAD only.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from storefront.foundation.application.context import acting_as
from storefront.foundation.domain.exceptions import AuthenticationError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from starlette.requests import Request
    from starlette.responses import Response

    from storefront.infra.auth.gate import AuthGate

logger = logging.getLogger(__name__)

# Default paths excluded from credential resolution.
DEFAULT_EXCLUDED_PREFIXES = (
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
    "/auth/register",
    "/auth/login",
)

# Paths anyone may read; writes under them still need a credential.
DEFAULT_PUBLIC_READ_PREFIXES = ("/products",)

_READ_METHODS = frozenset({"GET", "HEAD"})

_PROBLEM_MEDIA_TYPE = "application/problem+json"


def path_matches(path: str, prefix: str) -> bool:
    """True if ``path`` is ``prefix`` itself or lies beneath it."""
    base = prefix.rstrip("/")
    return path == base or path.startswith(base + "/")


class BearerAuthMiddleware(BaseHTTPMiddleware):
    """Credential resolution middleware.

    Request flow:
    1. Check if path is excluded, or a public read -> skip auth
    2. Read Authorization header, falling back to the credential cookie
    3. Resolve principal through the Auth Gate (sync, run in threadpool)
    4. Set principal context and call next handler

    Every AuthenticationError becomes a 401 with a WWW-Authenticate
    header per RFC 6750.
    """

    def __init__(
        self,
        app: Any,
        gate: AuthGate,
        cookie_name: str = "token",
        excluded_prefixes: tuple[str, ...] | None = None,
        public_read_prefixes: tuple[str, ...] | None = None,
    ) -> None:
        super().__init__(app)
        self._gate = gate
        self._cookie_name = cookie_name
        self._excluded_prefixes = (
            excluded_prefixes if excluded_prefixes is not None else DEFAULT_EXCLUDED_PREFIXES
        )
        self._public_read_prefixes = (
            public_read_prefixes
            if public_read_prefixes is not None
            else DEFAULT_PUBLIC_READ_PREFIXES
        )

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        path = request.url.path
        if self._is_public(path, request.method):
            return await call_next(request)

        credential = request.headers.get("Authorization")
        if not credential:
            credential = request.cookies.get(self._cookie_name)

        try:
            principal = await run_in_threadpool(self._gate.resolve_principal, credential)
        except AuthenticationError as exc:
            return self._auth_error(request, exc)

        request.state.principal = principal
        with acting_as(principal):
            return await call_next(request)

    def _is_public(self, path: str, method: str) -> bool:
        if any(path_matches(path, prefix) for prefix in self._excluded_prefixes):
            return True
        return method in _READ_METHODS and any(
            path_matches(path, prefix) for prefix in self._public_read_prefixes
        )

    def _auth_error(self, request: Request, exc: AuthenticationError) -> JSONResponse:
        """Build RFC 7807 + RFC 6750 compliant 401 response."""
        logger.info(
            "auth_validation_failed",
            extra={
                "error_code": exc.error_code,
                "path": request.url.path,
                "method": request.method,
            },
        )
        content: dict[str, Any] = {
            "type": f"/errors/{exc.error_code.lower().replace('_', '-')}",
            "title": "Unauthorized",
            "status": 401,
            "detail": exc.message,
            "error_code": exc.error_code,
            "instance": str(request.url.path),
        }
        if "expired_at" in exc.context:
            content["context"] = {"expired_at": exc.context["expired_at"]}
        if "locked_until" in exc.context:
            content["context"] = {"locked_until": exc.context["locked_until"]}
        return JSONResponse(
            status_code=401,
            content=content,
            media_type=_PROBLEM_MEDIA_TYPE,
            headers={
                "WWW-Authenticate": (
                    f'Bearer realm="storefront", error="{exc.auth_error}", '
                    f'error_description="{exc.message}"'
                )
            },
        )
