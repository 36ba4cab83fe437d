"""FastAPI dependency functions for authentication and authorization.

Provides Depends()-compatible functions for injecting principal context
into endpoint handlers.

Usage:
    from storefront.infra.auth.dependencies import CurrentPrincipal, require_roles

    @router.post("/orders/{order_number}/status")
    def change_status(
        principal: Annotated[Principal, Depends(require_roles("admin", "moderator"))],
        ...
    ):
        ...
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated

from fastapi import Depends, Request

from storefront.foundation.application.context import current_principal
from storefront.foundation.domain.exceptions import NotAuthenticatedError
from storefront.foundation.domain.principal import Principal
from storefront.infra.auth.gate import authorize

if TYPE_CHECKING:
    from collections.abc import Callable

    from storefront.foundation.domain.principal import Role


def get_optional_current_principal(request: Request) -> Principal | None:
    """Principal resolved by BearerAuthMiddleware, or None on excluded paths."""
    principal: Principal | None = getattr(request.state, "principal", None)
    return principal if principal is not None else current_principal()


def get_current_principal(
    principal: Annotated[Principal | None, Depends(get_optional_current_principal)],
) -> Principal:
    """FastAPI dependency that returns the authenticated principal.

    Raises:
        NotAuthenticatedError: If no principal was resolved for the request.
    """
    if principal is None:
        raise NotAuthenticatedError()
    return principal


# Type alias for cleaner endpoint signatures
CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


def require_roles(*roles: Role | str) -> Callable[..., Principal]:
    """Factory returning a dependency that enforces role membership.

    Returns:
        FastAPI dependency returning the principal, raising
        NotAuthenticatedError or ForbiddenError otherwise.

    Usage:
        @router.put("/orders/{order_number}/discount")
        def apply_discount(
            principal: Annotated[Principal, Depends(require_roles("admin"))],
        ):
            ...
    """

    def _check_roles(
        principal: Annotated[Principal | None, Depends(get_optional_current_principal)],
    ) -> Principal:
        return authorize(principal, roles)

    return _check_roles
