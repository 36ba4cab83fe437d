"""Error types shared by the identity and ordering contexts.

Every error carries a machine-readable ``error_code`` and a ``context``
dict of structured details; the HTTP layer turns both into an RFC 7807
problem body, and log lines carry the same fields.

Credential failures get one class per outcome so clients can tell
"sign in again" (expired) apart from "this token is not ours" (invalid)
and from account problems (disabled, locked).

Example:
    >>> from storefront.foundation.domain.exceptions import NotFoundError
    >>> raise NotFoundError("Order", "2026-10-0001")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime
    from uuid import UUID

__all__ = [
    "AccountDisabledError",
    "AccountLockedError",
    "AuthenticationError",
    "AuthorizationError",
    "ConflictError",
    "DomainError",
    "ExpiredCredentialError",
    "ForbiddenError",
    "InvalidCredentialError",
    "InvalidLoginError",
    "InvalidStateTransitionError",
    "MissingCredentialError",
    "NotAuthenticatedError",
    "NotFoundError",
    "PrincipalNotFoundError",
    "RateLimitExceededError",
    "ValidationError",
]


class DomainError(Exception):
    """Root of the storefront error hierarchy (HTTP 400 unless a subclass says otherwise).

    Attributes:
        error_code: Stable code clients can switch on.
        message: Human-readable description.
        context: Structured details, snake_case keys.

    Example:
        >>> str(DomainError("Order is archived", context={"order_number": "2026-10-0001"}))
        'Order is archived (order_number=2026-10-0001)'
    """

    error_code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.message} ({details})"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, context={self.context!r})"


class NotFoundError(DomainError):
    """A user, order or line item that does not exist (HTTP 404).

    Example:
        >>> str(NotFoundError("Order", "2026-10-0001"))
        'Order not found: 2026-10-0001 (resource_type=Order, resource_id=2026-10-0001)'
    """

    error_code: str = "RESOURCE_NOT_FOUND"

    def __init__(self, resource_type: str, resource_id: UUID | str, **extra_context: Any) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            {"resource_type": resource_type, "resource_id": str(resource_id), **extra_context},
        )


class ValidationError(DomainError):
    """Command input that breaks a business rule (HTTP 422).

    Schema-level problems are caught earlier by pydantic; this is for
    rules only the domain knows, such as the password policy.
    """

    error_code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str, **extra_context: Any) -> None:
        self.field = field
        self.reason = reason
        super().__init__(
            f"Validation failed for '{field}': {reason}",
            {"field": field, "reason": reason, **extra_context},
        )


class ConflictError(DomainError):
    """The request clashes with current state (HTTP 409).

    Raised for taken emails and order numbers, for saves that lost an
    optimistic-concurrency race, and (through subclasses) for illegal
    state changes.
    """

    error_code: str = "CONFLICT"

    def __init__(self, reason: str, **context: Any) -> None:
        self.reason = reason
        super().__init__(f"Conflict: {reason}", context)


class InvalidStateTransitionError(ConflictError):
    """A state machine refused a transition."""

    error_code: str = "INVALID_STATE_TRANSITION"


class AuthenticationError(DomainError):
    """No usable credential or principal (HTTP 401).

    ``auth_error`` is the RFC 6750 code placed in the ``WWW-Authenticate``
    header of the response.
    """

    error_code: str = "AUTHENTICATION_ERROR"
    auth_error: str = "invalid_token"

    def __init__(
        self,
        message: str,
        auth_error: str | None = None,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        if auth_error is not None:
            self.auth_error = auth_error
        if error_code is not None:
            self.error_code = error_code
        super().__init__(message, context)


class MissingCredentialError(AuthenticationError):
    """No bearer credential was supplied with the request."""

    error_code = "MISSING_CREDENTIAL"
    auth_error = "invalid_request"

    def __init__(self) -> None:
        super().__init__("Authentication credential is required")


class InvalidCredentialError(AuthenticationError):
    """Credential is malformed or its signature does not verify."""

    error_code = "INVALID_CREDENTIAL"

    def __init__(self, reason: str = "Credential is malformed or has an invalid signature") -> None:
        super().__init__(reason)


class ExpiredCredentialError(AuthenticationError):
    """Credential was well-formed and signed but its expiry has passed.

    Attributes:
        expired_at: The expiry timestamp embedded in the credential.
    """

    error_code = "EXPIRED_CREDENTIAL"

    def __init__(self, expired_at: datetime) -> None:
        self.expired_at = expired_at
        super().__init__(
            "Credential has expired",
            context={"expired_at": expired_at.isoformat()},
        )


class PrincipalNotFoundError(AuthenticationError):
    """Credential references a principal that no longer exists."""

    error_code = "PRINCIPAL_NOT_FOUND"

    def __init__(self, principal_id: UUID | str) -> None:
        super().__init__(
            "Principal referenced by credential does not exist",
            context={"principal_id": str(principal_id)},
        )


class AccountDisabledError(AuthenticationError):
    """Principal exists but its account has been deactivated."""

    error_code = "ACCOUNT_DISABLED"

    def __init__(self, principal_id: UUID | str) -> None:
        super().__init__(
            "Account has been disabled",
            context={"principal_id": str(principal_id)},
        )


class AccountLockedError(AuthenticationError):
    """Principal is temporarily locked after repeated failed logins.

    Attributes:
        locked_until: When the lock lapses.
    """

    error_code = "ACCOUNT_LOCKED"

    def __init__(self, principal_id: UUID | str, locked_until: datetime) -> None:
        self.locked_until = locked_until
        super().__init__(
            "Account is temporarily locked",
            context={
                "principal_id": str(principal_id),
                "locked_until": locked_until.isoformat(),
            },
        )


class NotAuthenticatedError(AuthenticationError):
    """An authorization check ran without a resolved principal."""

    error_code = "NOT_AUTHENTICATED"

    def __init__(self) -> None:
        super().__init__("Authentication is required for this operation")


class InvalidLoginError(AuthenticationError):
    """Email/password pair did not match a principal.

    Deliberately does not say which half was wrong.
    """

    error_code = "INVALID_LOGIN"
    auth_error = "invalid_client"

    def __init__(self) -> None:
        super().__init__("Invalid email or password")


class AuthorizationError(DomainError):
    """Raised when authenticated principal lacks required permissions.

    Maps to HTTP 403 Forbidden. Used for valid credentials with insufficient
    roles.
    """

    error_code: str = "AUTHORIZATION_ERROR"


class ForbiddenError(AuthorizationError):
    """Principal's role is not among the roles allowed for the operation.

    The actual role and the allowed set are reported for client-side
    diagnostics only.

    Attributes:
        role: The principal's actual role.
        allowed_roles: Roles permitted for the operation.
    """

    error_code = "FORBIDDEN"

    def __init__(self, role: str, allowed_roles: Iterable[str]) -> None:
        self.role = role
        self.allowed_roles = tuple(sorted(allowed_roles))
        super().__init__(
            f"Operation requires one of roles: {', '.join(self.allowed_roles)}",
            context={"role": role, "allowed_roles": list(self.allowed_roles)},
        )


class RateLimitExceededError(DomainError):
    """Too many requests from one client inside the current window.

    Maps to HTTP 429 Too Many Requests.

    Attributes:
        limit: Requests allowed per window.
        retry_after: Seconds until the window resets.
    """

    error_code = "RATE_LIMITED"

    def __init__(self, scope: str, limit: int, retry_after: int) -> None:
        self.limit = limit
        self.retry_after = retry_after
        super().__init__(
            f"Too many {scope} requests; retry in {retry_after} seconds",
            context={"scope": scope, "limit": limit, "retry_after": retry_after},
        )
