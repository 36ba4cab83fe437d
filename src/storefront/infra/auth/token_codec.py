"""Signed credential tokens (JWT, HMAC).

Implements the TokenCodecPort protocol from storefront.foundation.domain.ports.

Expiry is checked against the injected ``now`` rather than PyJWT's wall
clock, after the signature has verified. A token signed with a foreign
secret is therefore reported as invalid even when it has also expired.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import jwt as pyjwt

from storefront.foundation.domain.exceptions import (
    ExpiredCredentialError,
    InvalidCredentialError,
)

if TYPE_CHECKING:
    from datetime import timedelta

_REQUIRED_CLAIMS = ["sub", "iat", "exp"]


class JWTTokenCodec:
    """HMAC-signed JWT codec with a single process-wide secret.

    Args:
        secret: Signing secret. Must be non-empty.
        algorithm: HMAC algorithm (default HS256).
        issuer: Value written to and required in the ``iss`` claim.

    Raises:
        ValueError: If ``secret`` is empty.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", issuer: str = "storefront") -> None:
        if not secret:
            msg = "Credential signing secret must not be empty"
            raise ValueError(msg)
        self._secret = secret
        self._algorithm = algorithm
        self._issuer = issuer

    def sign(self, claims: dict[str, Any], *, now: datetime, ttl: timedelta) -> str:
        payload = {
            **claims,
            "iss": self._issuer,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
        }
        return pyjwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str, *, now: datetime) -> dict[str, Any]:
        try:
            claims: dict[str, Any] = pyjwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                issuer=self._issuer,
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "require": _REQUIRED_CLAIMS,
                },
            )
        except pyjwt.InvalidSignatureError as exc:
            raise InvalidCredentialError("Credential signature verification failed") from exc
        except pyjwt.DecodeError as exc:
            raise InvalidCredentialError("Credential is malformed") from exc
        except pyjwt.InvalidTokenError as exc:
            raise InvalidCredentialError(f"Credential claims are invalid: {exc}") from exc

        try:
            expires_at = datetime.fromtimestamp(int(claims["exp"]), UTC)
        except (TypeError, ValueError, OverflowError) as exc:
            raise InvalidCredentialError("Credential expiry claim is malformed") from exc
        if expires_at <= now:
            raise ExpiredCredentialError(expires_at)
        return claims
