"""Principal value object representing an authenticated identity.

Pure domain object with no external dependencies. Immutable (frozen dataclass).
Built from the live User record on every request, never from credential
claims: role and active status may have changed since the credential was
issued.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID


class Role(StrEnum):
    """Fixed set of principal roles."""

    CUSTOMER = "customer"
    ADMIN = "admin"
    MODERATOR = "moderator"


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated actor performing a request.

    Attributes:
        user_id: Identifier of the live User record.
        email: Normalized (lowercase) email.
        role: Current role.
        is_active: False once an administrator deactivates the account.
        locked_until: End of the login lockout window, if one was set.
        failed_login_attempts: Consecutive failed password comparisons.
    """

    user_id: UUID
    email: str
    role: Role
    is_active: bool = True
    locked_until: datetime | None = None
    failed_login_attempts: int = 0

    def is_locked(self, now: datetime) -> bool:
        """Return True while the lockout window is still open."""
        return self.locked_until is not None and self.locked_until > now
