"""Port interface for signing and verifying credential tokens.

Example:
    >>> from storefront.foundation.domain.ports import TokenCodecPort
    >>> def reissue(codec: TokenCodecPort, token: str, now, ttl) -> str:
    ...     claims = codec.verify(token, now=now)
    ...     return codec.sign(claims, now=now, ttl=ttl)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime, timedelta


@runtime_checkable
class TokenCodecPort(Protocol):
    """Port for credential token encoding with a single symmetric secret.

    Implementations embed ``iat`` and ``exp`` themselves and check them on
    verification against the supplied ``now``.
    """

    def sign(self, claims: dict[str, Any], *, now: datetime, ttl: timedelta) -> str:
        """Sign ``claims`` into an opaque token valid for ``ttl`` from ``now``.

        Args:
            claims: Application claims (subject, email, role).
            now: Issue instant, recorded as ``iat``.
            ttl: Lifetime; ``exp`` is ``now + ttl``.

        Returns:
            Encoded token string.
        """
        ...

    def verify(self, token: str, *, now: datetime) -> dict[str, Any]:
        """Verify signature and expiry and return the decoded claims.

        Raises:
            InvalidCredentialError: If the token is malformed or the
                signature does not verify.
            ExpiredCredentialError: If ``exp`` is at or before ``now``.
        """
        ...
