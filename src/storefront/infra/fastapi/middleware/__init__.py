"""ASGI middleware for the storefront API."""

from storefront.infra.fastapi.middleware.request_context import (
    REQUEST_ID_HEADER,
    RequestContextMiddleware,
    get_request_id,
)

__all__ = ["REQUEST_ID_HEADER", "RequestContextMiddleware", "get_request_id"]
