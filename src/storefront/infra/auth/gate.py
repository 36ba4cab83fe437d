"""Auth Gate: credential to principal resolution and role checks.

Resolution order for a presented credential:

1. No credential (absent, blank, or a bare ``Bearer`` label) -> MissingCredentialError
2. Malformed token or bad signature -> InvalidCredentialError
3. Signature valid but ``exp`` has passed -> ExpiredCredentialError
4. Subject no longer exists -> PrincipalNotFoundError
5. Account deactivated -> AccountDisabledError
6. Account inside a lockout window -> AccountLockedError

The principal returned is always built from the live record. Email and
role embedded in the token are never trusted, so a role change or a
deactivation takes effect on the very next request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING
from uuid import UUID

from storefront.foundation.domain.exceptions import (
    AccountDisabledError,
    AccountLockedError,
    ForbiddenError,
    InvalidCredentialError,
    MissingCredentialError,
    NotAuthenticatedError,
    PrincipalNotFoundError,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime, timedelta

    from storefront.foundation.domain.ports import Clock, PrincipalStore, TokenCodecPort
    from storefront.foundation.domain.principal import Principal, Role

logger = logging.getLogger(__name__)

_BEARER_LABEL = "bearer"


@dataclass(frozen=True, slots=True)
class IssuedCredential:
    """A freshly signed credential and its expiry."""

    token: str
    expires_at: datetime


def extract_token(raw: str | None) -> str | None:
    """Strip an optional ``Bearer`` label (any case) from a raw credential.

    Returns None when nothing usable remains.

    Example:
        >>> extract_token("Bearer abc.def.ghi")
        'abc.def.ghi'
        >>> extract_token("abc.def.ghi")
        'abc.def.ghi'
        >>> extract_token("bearer ") is None
        True
    """
    if raw is None:
        return None
    value = raw.strip()
    scheme, _, rest = value.partition(" ")
    if scheme.lower() == _BEARER_LABEL:
        value = rest.strip()
    return value or None


def authorize(principal: Principal | None, allowed_roles: Iterable[Role | str]) -> Principal:
    """Check that ``principal`` holds one of ``allowed_roles``.

    Pure function: no I/O, no clock.

    Raises:
        NotAuthenticatedError: If ``principal`` is None.
        ForbiddenError: If the principal's role is not allowed.
    """
    if principal is None:
        raise NotAuthenticatedError()
    allowed = {str(role) for role in allowed_roles}
    if str(principal.role) not in allowed:
        raise ForbiddenError(str(principal.role), allowed)
    return principal


class AuthGate:
    """Resolves bearer credentials to live principals and issues new ones.

    Attributes:
        _codec: Token codec (signature and expiry checks).
        _store: Principal store for live-record lookups.
        _clock: Time source for expiry and lockout checks.
        _token_ttl: Lifetime of issued credentials.
    """

    def __init__(
        self,
        codec: TokenCodecPort,
        store: PrincipalStore,
        clock: Clock,
        token_ttl: timedelta,
    ) -> None:
        self._codec = codec
        self._store = store
        self._clock = clock
        self._token_ttl = token_ttl

    def resolve_principal(self, credential: str | None) -> Principal:
        """Resolve a raw credential (header value or cookie) to a principal.

        Raises:
            MissingCredentialError: No credential was presented.
            InvalidCredentialError: Malformed token or bad signature.
            ExpiredCredentialError: Token expiry has passed.
            PrincipalNotFoundError: Subject no longer exists.
            AccountDisabledError: Account is deactivated.
            AccountLockedError: Account is inside a lockout window.
        """
        token = extract_token(credential)
        if token is None:
            raise MissingCredentialError()

        now = self._clock.now()
        claims = self._codec.verify(token, now=now)

        try:
            principal_id = UUID(str(claims["sub"]))
        except (KeyError, ValueError) as exc:
            raise InvalidCredentialError("Credential subject is not a valid identifier") from exc

        # Role and email claims are ignored on purpose; only the live record counts.
        principal = self._store.find_principal(principal_id)
        if principal is None:
            raise PrincipalNotFoundError(principal_id)
        if not principal.is_active:
            raise AccountDisabledError(principal_id)
        if principal.locked_until is not None and principal.is_locked(now):
            raise AccountLockedError(principal_id, principal.locked_until)
        return principal

    def authorize(
        self,
        principal: Principal | None,
        allowed_roles: Iterable[Role | str],
    ) -> Principal:
        return authorize(principal, allowed_roles)

    def issue_credential(self, principal: Principal) -> IssuedCredential:
        """Sign a credential for ``principal`` valid for the configured TTL."""
        now = self._clock.now()
        token = self._codec.sign(
            {
                "sub": str(principal.user_id),
                "email": principal.email,
                "role": str(principal.role),
            },
            now=now,
            ttl=self._token_ttl,
        )
        logger.info(
            "credential_issued",
            extra={"user_id": str(principal.user_id), "role": str(principal.role)},
        )
        return IssuedCredential(token=token, expires_at=now + self._token_ttl)
