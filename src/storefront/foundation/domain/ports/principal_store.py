"""Port interface for resolving live principals.

The Auth Gate depends only on this read-side view of the principal store;
credential changes, lockouts and role changes are written through the
identity context's repository.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from uuid import UUID

    from storefront.foundation.domain.principal import Principal


@runtime_checkable
class PrincipalStore(Protocol):
    """Read access to the current state of principals."""

    def find_principal(self, user_id: UUID) -> Principal | None:
        """Return the live principal for ``user_id``, or None if it does not exist."""
        ...
