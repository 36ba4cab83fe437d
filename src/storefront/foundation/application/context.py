"""The principal acting in the current request.

The bearer middleware resolves a principal once per request and binds it
here for the duration of the request, so code below the HTTP layer can
attribute changes (status history entries, audit log lines) without the
principal being threaded through every call.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from storefront.foundation.domain.principal import Principal

_acting_principal: ContextVar[Principal | None] = ContextVar("acting_principal", default=None)


@contextmanager
def acting_as(principal: Principal) -> Iterator[Principal]:
    """Bind ``principal`` as the acting principal until the block exits.

    Example:
        >>> with acting_as(principal):
        ...     assert current_principal() is principal
    """
    token = _acting_principal.set(principal)
    try:
        yield principal
    finally:
        _acting_principal.reset(token)


def current_principal() -> Principal | None:
    """The acting principal, or None outside an authenticated request."""
    return _acting_principal.get()
