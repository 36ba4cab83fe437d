"""bcrypt password hashing.

Implements the PasswordHasherPort protocol from
storefront.foundation.domain.ports.
"""

from __future__ import annotations

import bcrypt

_DEFAULT_BCRYPT_ROUNDS = 12


class BcryptPasswordHasher:
    """Password hasher backed by bcrypt.

    Args:
        rounds: bcrypt work factor (default 12).

    Example:
        >>> hasher = BcryptPasswordHasher(rounds=4)
        >>> password_hash = hasher.hash_password("Secr3tPass")
        >>> password_hash.startswith("$2b$")
        True
        >>> hasher.verify_password("Secr3tPass", password_hash)
        True
    """

    def __init__(self, rounds: int = _DEFAULT_BCRYPT_ROUNDS) -> None:
        self._rounds = rounds

    def hash_password(self, password: str) -> str:
        return bcrypt.hashpw(
            password.encode("utf-8"),
            bcrypt.gensalt(rounds=self._rounds),
        ).decode("utf-8")

    def verify_password(self, password: str, password_hash: str) -> bool:
        """Timing-safe comparison (bcrypt inherently constant-time).

        Inputs bcrypt rejects (over-long passwords, corrupt hashes) never
        match.
        """
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            return False
