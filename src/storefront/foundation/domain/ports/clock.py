"""Port interface for reading the current time.

Injected wherever business rules depend on "now" (credential expiry,
login lockout, status history timestamps) so tests can control time.

Example:
    >>> from storefront.foundation.domain.ports import Clock
    >>> def is_expired(clock: Clock, deadline) -> bool:
    ...     return clock.now() >= deadline
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime


@runtime_checkable
class Clock(Protocol):
    """Source of timezone-aware UTC timestamps."""

    def now(self) -> datetime:
        """Return the current instant as a timezone-aware UTC datetime."""
        ...
