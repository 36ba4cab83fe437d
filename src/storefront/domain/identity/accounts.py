"""Commands and handlers for registration, login and account administration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from storefront.domain.identity.user import User
from storefront.foundation.domain.exceptions import (
    AccountDisabledError,
    AccountLockedError,
    ConflictError,
    InvalidLoginError,
    ValidationError,
)
from storefront.foundation.domain.principal import Role
from storefront.foundation.domain.user_value_objects import Email, Password

if TYPE_CHECKING:
    from datetime import timedelta
    from uuid import UUID

    from storefront.domain.identity.repository import UserRepository
    from storefront.foundation.domain.ports import Clock, PasswordHasherPort
    from storefront.foundation.domain.principal import Principal
    from storefront.infra.auth.gate import AuthGate, IssuedCredential

logger = logging.getLogger(__name__)


def _validated_email(email: str) -> str:
    try:
        return Email(email).value
    except ValueError as exc:
        raise ValidationError("email", str(exc)) from exc


def _validated_password(password: str) -> str:
    try:
        return Password(password).value
    except ValueError as exc:
        raise ValidationError("password", str(exc)) from exc


def _validated_role(role: str) -> Role:
    try:
        return Role(role)
    except ValueError as exc:
        raise ValidationError("role", f"Unknown role '{role}'") from exc


@dataclass(frozen=True)
class RegisterUserCommand:
    """Command to register a new user account."""

    email: str
    password: str
    first_name: str = ""
    last_name: str = ""
    role: str = Role.CUSTOMER.value


class RegisterUserHandler:
    """Registers a user: validates credentials, hashes the password, saves.

    Security invariant: the plaintext password exists only in the command
    and is never logged, persisted, or stored in events.
    """

    def __init__(self, repository: UserRepository, hasher: PasswordHasherPort) -> None:
        self._repository = repository
        self._hasher = hasher

    def handle(self, cmd: RegisterUserCommand) -> User:
        """Register a new user.

        Raises:
            ValidationError: If email, password or role is invalid.
            ConflictError: If the email is already registered.
        """
        email = _validated_email(cmd.email)
        password = _validated_password(cmd.password)
        role = _validated_role(cmd.role)

        if self._repository.find_by_email(email) is not None:
            raise ConflictError(f"Email '{email}' is already registered", email=email)

        user = User(
            email=email,
            password_hash=self._hasher.hash_password(password),
            role=role.value,
            first_name=cmd.first_name,
            last_name=cmd.last_name,
        )
        self._repository.add(user)
        return user


@dataclass(frozen=True)
class LoginCommand:
    """Command to exchange an email/password pair for a credential."""

    email: str
    password: str


@dataclass(frozen=True)
class LoginResult:
    principal: Principal
    credential: IssuedCredential


class LoginHandler:
    """Verifies a password and issues a credential, throttling failures.

    Account state is checked before the password: a disabled or locked
    account is rejected without a comparison, and a lockout window is
    never extended by further attempts.
    """

    def __init__(
        self,
        repository: UserRepository,
        hasher: PasswordHasherPort,
        gate: AuthGate,
        clock: Clock,
        max_failed_attempts: int,
        lockout_duration: timedelta,
    ) -> None:
        self._repository = repository
        self._hasher = hasher
        self._gate = gate
        self._clock = clock
        self._max_failed_attempts = max_failed_attempts
        self._lockout_duration = lockout_duration

    def handle(self, cmd: LoginCommand) -> LoginResult:
        """Authenticate an email/password pair.

        Raises:
            InvalidLoginError: Unknown email or wrong password.
            AccountDisabledError: Account is deactivated.
            AccountLockedError: Account is inside a lockout window.
        """
        user = self._repository.find_by_email(cmd.email)
        if user is None:
            logger.info("login_failed", extra={"reason": "unknown_email"})
            raise InvalidLoginError()

        now = self._clock.now()
        if not user.is_active:
            raise AccountDisabledError(user.id)
        if user.locked_until is not None and user.is_locked(now):
            raise AccountLockedError(user.id, user.locked_until)

        if not self._hasher.verify_password(cmd.password, user.password_hash):
            updated = self._repository.record_failed_login(
                user.id,
                now,
                self._max_failed_attempts,
                self._lockout_duration,
            )
            logger.info(
                "login_failed",
                extra={
                    "reason": "wrong_password",
                    "user_id": str(user.id),
                    "failed_login_attempts": updated.failed_login_attempts,
                },
            )
            raise InvalidLoginError()

        user = self._repository.clear_failed_logins(user.id, now)
        principal = user.as_principal()
        credential = self._gate.issue_credential(principal)
        logger.info("login_succeeded", extra={"user_id": str(user.id)})
        return LoginResult(principal=principal, credential=credential)


@dataclass(frozen=True)
class UpdateAccountCommand:
    """Administrative change to an account. Unset fields are left alone."""

    user_id: UUID
    requested_by: str
    is_active: bool | None = None
    role: str | None = None
    password: str | None = None


class UpdateAccountHandler:
    """Applies administrative account changes with conflict retries."""

    def __init__(self, repository: UserRepository, hasher: PasswordHasherPort) -> None:
        self._repository = repository
        self._hasher = hasher

    def handle(self, cmd: UpdateAccountCommand) -> User:
        """Apply the requested account changes.

        Raises:
            ValidationError: If role or password is invalid.
            NotFoundError: If the user does not exist.
        """
        role = _validated_role(cmd.role) if cmd.role is not None else None
        password_hash = (
            self._hasher.hash_password(_validated_password(cmd.password))
            if cmd.password is not None
            else None
        )

        def change(user: User) -> None:
            if cmd.is_active is True:
                user.request_reactivate()
            if role is not None:
                user.request_change_role(role)
            if password_hash is not None:
                user.request_change_password(password_hash)
            if cmd.is_active is False:
                user.request_deactivate()

        user = self._repository.update(cmd.user_id, change)
        logger.info(
            "account_updated",
            extra={
                "user_id": str(cmd.user_id),
                "requested_by": cmd.requested_by,
                "is_active": user.is_active,
                "role": user.role,
            },
        )
        return user


@dataclass(frozen=True)
class UpdateProfileCommand:
    """Self-service change to the caller's own account.

    A new password is only accepted alongside the current one.
    """

    user_id: UUID
    first_name: str | None = None
    last_name: str | None = None
    password: str | None = None
    current_password: str | None = None


class UpdateProfileHandler:
    def __init__(self, repository: UserRepository, hasher: PasswordHasherPort) -> None:
        self._repository = repository
        self._hasher = hasher

    def handle(self, cmd: UpdateProfileCommand) -> User:
        """Rename the caller and optionally rotate their password.

        Raises:
            ValidationError: If nothing is requested, the new password is
                weak, or the current password does not match.
            NotFoundError: If the user does not exist.
        """
        if cmd.first_name is None and cmd.last_name is None and cmd.password is None:
            raise ValidationError("profile", "Nothing to update")

        password_hash = None
        if cmd.password is not None:
            password = _validated_password(cmd.password)
            current = self._repository.get(cmd.user_id)
            if cmd.current_password is None or not self._hasher.verify_password(
                cmd.current_password, current.password_hash
            ):
                raise ValidationError("current_password", "Current password is incorrect")
            password_hash = self._hasher.hash_password(password)

        def change(user: User) -> None:
            user.request_update_profile(first_name=cmd.first_name, last_name=cmd.last_name)
            if password_hash is not None:
                user.request_change_password(password_hash)

        user = self._repository.update(cmd.user_id, change)
        logger.info(
            "profile_updated",
            extra={"user_id": str(cmd.user_id), "password_changed": password_hash is not None},
        )
        return user
