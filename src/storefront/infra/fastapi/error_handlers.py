"""Problem responses (RFC 7807) for storefront errors.

Each error family maps to one problem type in ``_PROBLEM_TYPES``.
Starlette picks handlers along the exception's MRO, so an
``IllegalTransitionError`` is rendered as a conflict and a
``LineItemNotFoundError`` as not-found, each keeping its own
``error_code``. Credential failures add an RFC 6750 ``WWW-Authenticate``
header and throttled requests a ``Retry-After`` header. Anything
unexpected becomes a 500 that carries the request's correlation ID.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from storefront.foundation.domain.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    RateLimitExceededError,
    ValidationError,
)
from storefront.infra.fastapi.middleware.request_context import get_request_id

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from fastapi import FastAPI, Request

logger = logging.getLogger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"


class ProblemDetail(BaseModel):
    """Problem body; ``error_code``, ``context`` and ``correlation_id`` are extensions."""

    type: str = Field(..., examples=["/errors/not-found", "/errors/conflict"])
    title: str = Field(..., examples=["Resource Not Found", "Conflict"])
    status: int = Field(..., ge=400, le=599)
    detail: str
    instance: str | None = None
    error_code: str | None = Field(default=None, examples=["ILLEGAL_TRANSITION", "ORDER_LOCKED"])
    context: dict[str, Any] | None = None
    correlation_id: str | None = None


# Most specific family first.
_PROBLEM_TYPES: list[tuple[type[DomainError], str, str, int]] = [
    (AuthorizationError, "forbidden", "Forbidden", 403),
    (NotFoundError, "not-found", "Resource Not Found", 404),
    (ValidationError, "validation-error", "Validation Error", 422),
    (ConflictError, "conflict", "Conflict", 409),
    (DomainError, "domain-error", "Bad Request", 400),
]

_HIDDEN_CONTEXT_KEYS = frozenset(
    {"password", "password_hash", "secret", "jwt_secret", "token", "credential", "authorization"}
)

# key=value fragments and DSNs that may end up in an error message
_SECRET_FRAGMENTS = [
    (re.compile(r"postgresql://[^@\s]*@[^/\s]*"), "postgresql://[REDACTED]@[REDACTED]"),
    (
        re.compile(r"\b(password|secret|token)\s*=\s*['\"]?[^'\"\s]+['\"]?", re.IGNORECASE),
        r"\1=[REDACTED]",
    ),
]


def _problem_response(problem: ProblemDetail, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=problem.status,
        content=problem.model_dump(exclude_none=True),
        media_type=PROBLEM_MEDIA_TYPE,
        headers=headers,
    )


def _public_context(context: dict[str, Any] | None) -> dict[str, Any] | None:
    if not context:
        return None
    public = {
        key: _json_safe(value)
        for key, value in context.items()
        if key.lower() not in _HIDDEN_CONTEXT_KEYS
    }
    return public or None


def _json_safe(value: Any) -> Any:
    if isinstance(value, str):
        return _scrub(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, dict):
        return _public_context(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_json_safe(item) for item in value]
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


def _scrub(text: str) -> str:
    for pattern, replacement in _SECRET_FRAGMENTS:
        text = pattern.sub(replacement, text)
    return text


def _family_handler(
    slug: str,
    title: str,
    status: int,
) -> Callable[[Request, DomainError], Awaitable[JSONResponse]]:
    async def handler(request: Request, exc: DomainError) -> JSONResponse:
        return _problem_response(
            ProblemDetail(
                type=f"/errors/{slug}",
                title=title,
                status=status,
                detail=_scrub(str(exc)),
                instance=request.url.path,
                error_code=exc.error_code,
                context=_public_context(exc.context),
            )
        )

    handler.__name__ = f"{slug.replace('-', '_')}_handler"
    return handler


async def authentication_error_handler(request: Request, exc: AuthenticationError) -> JSONResponse:
    """401 with a ``WWW-Authenticate`` challenge (RFC 6750 section 3)."""
    problem = ProblemDetail(
        type=f"/errors/{exc.error_code.lower().replace('_', '-')}",
        title="Unauthorized",
        status=401,
        detail=exc.message,
        instance=request.url.path,
        error_code=exc.error_code,
        context=_public_context(exc.context),
    )
    challenge = f'Bearer realm="storefront", error="{exc.auth_error}"'
    return _problem_response(problem, headers={"WWW-Authenticate": challenge})


async def rate_limit_handler(request: Request, exc: RateLimitExceededError) -> JSONResponse:
    """429 with the window's limit and when to retry."""
    problem = ProblemDetail(
        type="/errors/rate-limited",
        title="Too Many Requests",
        status=429,
        detail=exc.message,
        instance=request.url.path,
        error_code=exc.error_code,
        context=_public_context(exc.context),
    )
    headers = {
        "Retry-After": str(exc.retry_after),
        "X-RateLimit-Limit": str(exc.limit),
        "X-RateLimit-Remaining": "0",
    }
    return _problem_response(problem, headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """422 for bodies and parameters that fail the pydantic schema."""
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", ""), "type": error.get("type", "")}
        for error in exc.errors()
    ]
    return _problem_response(
        ProblemDetail(
            type="/errors/request-validation-error",
            title="Request Validation Error",
            status=422,
            detail="Request validation failed",
            instance=request.url.path,
            error_code="REQUEST_VALIDATION_ERROR",
            context={"errors": errors},
        )
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """500 carrying the correlation ID; the exception itself is only logged."""
    correlation_id = get_request_id() or getattr(request.state, "request_id", "") or "unknown"
    logger.exception(
        "unhandled_exception",
        extra={
            "correlation_id": correlation_id,
            "method": request.method,
            "path": request.url.path,
            "exception_type": type(exc).__name__,
        },
    )
    problem = ProblemDetail(
        type="/errors/internal-error",
        title="Internal Server Error",
        status=500,
        detail="An internal error occurred. Quote the correlation ID when reporting it.",
        instance=request.url.path,
        error_code="INTERNAL_ERROR",
        correlation_id=correlation_id,
    )
    return _problem_response(problem, headers={"X-Request-ID": correlation_id})


def register_exception_handlers(app: FastAPI) -> None:
    """Install the problem handlers on ``app``.

    401 for credential failures, 429 for throttled requests, 403 / 404 /
    422 / 409 / 400 per ``_PROBLEM_TYPES``, 422 for schema validation and
    500 for the rest.
    """
    # Starlette's handler typing is narrower than what it accepts at runtime.
    app.add_exception_handler(AuthenticationError, authentication_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RateLimitExceededError, rate_limit_handler)  # type: ignore[arg-type]
    for exc_class, slug, title, status in _PROBLEM_TYPES:
        app.add_exception_handler(exc_class, _family_handler(slug, title, status))  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
