"""Health check endpoint.

Reports liveness plus the persistence module each event-sourced
application is running on.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


def _persistence_module(app: Any) -> str:
    recorder = getattr(app, "recorder", None)
    return type(recorder).__module__ if recorder is not None else "unknown"


@router.get("/health")
def health(request: Request) -> dict[str, Any]:
    """Return overall status and per-application persistence backends."""
    state = request.app.state
    return {
        "status": "ok",
        "checks": {
            "users": {"persistence": _persistence_module(state.user_app)},
            "orders": {"persistence": _persistence_module(state.order_app)},
            "products": {"persistence": _persistence_module(state.product_app)},
        },
    }
