"""User repository: principal store backed by the User event stream.

Combines the UserApplication (aggregate persistence) with an email key
registry (uniqueness and lookup by email). Implements the PrincipalStore
port consumed by the Auth Gate.

Counter updates (failed logins, lockout) are applied with a reload, apply
and save loop. A concurrent writer makes the save fail the version check;
the loop then reloads the newer state and applies the change again, so no
increment is ever lost.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from eventsourcing.application import AggregateNotFoundError
from eventsourcing.persistence import IntegrityError

from storefront.domain.identity.user import User
from storefront.foundation.domain.exceptions import ConflictError, NotFoundError
from storefront.foundation.domain.user_value_objects import Email

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime, timedelta
    from uuid import UUID

    from storefront.domain.identity.user_app import UserApplication
    from storefront.foundation.domain.principal import Principal
    from storefront.infra.persistence.registry import KeyRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_SAVE_ATTEMPTS = 5


class UserRepository:
    """Loads, creates and updates User aggregates.

    Attributes:
        _app: UserApplication for aggregate persistence.
        _registry: Email key registry for uniqueness enforcement.
        _max_save_attempts: Retries of a conflicting counter update.
    """

    def __init__(
        self,
        app: UserApplication,
        registry: KeyRegistry,
        max_save_attempts: int = DEFAULT_MAX_SAVE_ATTEMPTS,
    ) -> None:
        self._app = app
        self._registry = registry
        self._max_save_attempts = max_save_attempts

    # -- Reads --

    def get(self, user_id: UUID) -> User:
        """Load a user.

        Raises:
            NotFoundError: If no user with ``user_id`` exists.
        """
        user = self.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def find_by_id(self, user_id: UUID) -> User | None:
        try:
            user: User = self._app.repository.get(user_id)
        except AggregateNotFoundError:
            return None
        return user

    def find_by_email(self, email: str) -> User | None:
        try:
            normalized = Email(email).value
        except ValueError:
            return None
        user_id = self._registry.lookup(normalized)
        if user_id is None:
            return None
        return self.find_by_id(user_id)

    def find_principal(self, user_id: UUID) -> Principal | None:
        user = self.find_by_id(user_id)
        return user.as_principal() if user is not None else None

    # -- Writes --

    def add(self, user: User) -> None:
        """Persist a newly registered user, enforcing email uniqueness.

        Raises:
            ConflictError: If the email is already registered.
        """
        self._registry.reserve(user.email)
        try:
            self._app.save(user)
            self._registry.confirm(user.email, user.id)
        except Exception:
            self._registry.release(user.email)
            logger.exception(
                "user_registration_failed_releasing_reservation",
                extra={"user_id": str(user.id)},
            )
            raise
        logger.info("user_registered", extra={"user_id": str(user.id), "role": user.role})

    def save(self, user: User) -> None:
        """Persist pending events of a loaded user.

        Raises:
            ConflictError: If another writer saved the user first.
        """
        try:
            self._app.save(user)
        except IntegrityError as err:
            raise ConflictError(
                "User was modified concurrently",
                user_id=str(user.id),
            ) from err

    def update(self, user_id: UUID, change: Callable[[User], None]) -> User:
        """Apply ``change`` to the latest state of a user and save it.

        ``change`` is re-applied to freshly loaded state after each version
        conflict, up to the configured number of attempts.

        Raises:
            NotFoundError: If the user does not exist.
            ConflictError: If every attempt lost a concurrent race.
        """
        for attempt in range(1, self._max_save_attempts + 1):
            user = self.get(user_id)
            change(user)
            try:
                self.save(user)
            except ConflictError:
                logger.warning(
                    "user_update_conflict_retrying",
                    extra={"user_id": str(user_id), "attempt": attempt},
                )
                continue
            return user
        raise ConflictError(
            "User update did not settle after retries",
            user_id=str(user_id),
            attempts=self._max_save_attempts,
        )

    def record_failed_login(
        self,
        user_id: UUID,
        now: datetime,
        threshold: int,
        lock_duration: timedelta,
    ) -> User:
        """Atomically count a failed login, locking the account at ``threshold``."""
        user = self.update(
            user_id,
            lambda u: u.request_record_failed_login(now, threshold, lock_duration),
        )
        if user.locked_until is not None and user.failed_login_attempts >= threshold:
            logger.warning(
                "account_locked",
                extra={
                    "user_id": str(user_id),
                    "locked_until": user.locked_until.isoformat(),
                },
            )
        return user

    def clear_failed_logins(self, user_id: UUID, now: datetime) -> User:
        """Reset the failure counter and lock, stamping the login time."""
        return self.update(user_id, lambda u: u.request_record_successful_login(now))
