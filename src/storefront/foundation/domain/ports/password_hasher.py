"""Port interface for password hashing."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class PasswordHasherPort(Protocol):
    """Port for one-way password hashing and constant-time verification."""

    def hash_password(self, password: str) -> str:
        """Return a salted hash suitable for persistent storage."""
        ...

    def verify_password(self, password: str, password_hash: str) -> bool:
        """Return True if ``password`` matches ``password_hash``."""
        ...
