"""Event-sourced User aggregate for password-authenticated principals.

Holds the credential hash, role, activation flag and the login throttling
state (consecutive failures and lockout window). Role and status are kept
as plain string values so that events and snapshots round-trip through
the event store unchanged.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from eventsourcing.domain import event

from storefront.foundation.domain.aggregates import BaseAggregate
from storefront.foundation.domain.exceptions import InvalidStateTransitionError
from storefront.foundation.domain.principal import Principal, Role
from storefront.foundation.domain.user_value_objects import Email

if TYPE_CHECKING:
    from datetime import datetime, timedelta


class User(BaseAggregate):
    """Event-sourced User aggregate.

    Attributes:
        email: Normalized email (immutable, unique across users).
        password_hash: Salted bcrypt hash of the current password.
        role: Current role (Role enum value).
        first_name: Given name.
        last_name: Family name.
        is_active: False once an administrator deactivates the account.
        failed_login_attempts: Consecutive failed password comparisons.
        locked_until: End of the current lockout window, if any.
        last_login_at: Timestamp of the last successful login.
    """

    # -- Creation (records User.Registered event) --

    @event("Registered")
    def __init__(
        self,
        *,
        email: str,
        password_hash: str,
        role: str = Role.CUSTOMER.value,
        first_name: str = "",
        last_name: str = "",
    ) -> None:
        """Register a new user.

        Raises:
            ValueError: If email is malformed or role is unknown.
        """
        self.email: str = Email(email).value
        self.password_hash: str = password_hash
        self.role: str = Role(role).value
        self.first_name: str = first_name.strip()
        self.last_name: str = last_name.strip()
        self.is_active: bool = True
        self.failed_login_attempts: int = 0
        self.locked_until: datetime | None = None
        self.last_login_at: datetime | None = None

    # -- Queries --

    def is_locked(self, now: datetime) -> bool:
        return self.locked_until is not None and self.locked_until > now

    def as_principal(self) -> Principal:
        """Project the live record onto the Principal value object."""
        return Principal(
            user_id=self.id,
            email=self.email,
            role=Role(self.role),
            is_active=self.is_active,
            locked_until=self.locked_until,
            failed_login_attempts=self.failed_login_attempts,
        )

    # -- Public command methods --

    def request_record_failed_login(
        self,
        now: datetime,
        threshold: int,
        lock_duration: timedelta,
    ) -> None:
        """Count a failed password comparison and lock once ``threshold`` is hit.

        A lapsed lock starts a fresh window: the counter restarts at one and
        the stale lock is cleared.
        """
        if self.locked_until is not None and self.locked_until <= now:
            self._apply_failed_login(attempts=1, locked_until=None)
            return
        attempts = self.failed_login_attempts + 1
        locked_until = now + lock_duration if attempts >= threshold else None
        self._apply_failed_login(attempts=attempts, locked_until=locked_until)

    def request_record_successful_login(self, now: datetime) -> None:
        self._apply_logged_in(at=now)

    def request_deactivate(self) -> None:
        """Disable the account. Idempotent."""
        if not self.is_active:
            return
        self._apply_deactivated()

    def request_reactivate(self) -> None:
        """Re-enable the account and clear any lockout. Idempotent."""
        if self.is_active and self.locked_until is None and self.failed_login_attempts == 0:
            return
        self._apply_reactivated()

    def request_change_role(self, role: Role | str) -> None:
        new_role = Role(role).value
        if new_role == self.role:
            return
        self._apply_role_changed(role=new_role)

    def request_change_password(self, password_hash: str) -> None:
        if not self.is_active:
            raise InvalidStateTransitionError(
                f"Cannot change password of disabled user {self.id}",
                user_id=str(self.id),
            )
        self._apply_password_changed(password_hash=password_hash)

    def request_update_profile(
        self,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> None:
        """Rename the account holder. Unset or unchanged names are ignored."""
        first = self.first_name if first_name is None else first_name.strip()
        last = self.last_name if last_name is None else last_name.strip()
        if (first, last) == (self.first_name, self.last_name):
            return
        self._apply_profile_updated(first_name=first, last_name=last)

    # -- Private @event mutators --

    @event("LoginFailed")
    def _apply_failed_login(self, attempts: int, locked_until: datetime | None) -> None:
        self.failed_login_attempts = attempts
        self.locked_until = locked_until

    @event("LoggedIn")
    def _apply_logged_in(self, at: datetime) -> None:
        self.failed_login_attempts = 0
        self.locked_until = None
        self.last_login_at = at

    @event("Deactivated")
    def _apply_deactivated(self) -> None:
        self.is_active = False

    @event("Reactivated")
    def _apply_reactivated(self) -> None:
        self.is_active = True
        self.failed_login_attempts = 0
        self.locked_until = None

    @event("RoleChanged")
    def _apply_role_changed(self, role: str) -> None:
        self.role = role

    @event("PasswordChanged")
    def _apply_password_changed(self, password_hash: str) -> None:
        self.password_hash = password_hash

    @event("ProfileUpdated")
    def _apply_profile_updated(self, first_name: str, last_name: str) -> None:
        self.first_name = first_name
        self.last_name = last_name
