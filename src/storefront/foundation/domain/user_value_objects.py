"""Value objects for the User aggregate.

Immutable, validated domain primitives. All validation occurs at construction.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True, slots=True)
class Email:
    """Validated, normalized email address.

    Surrounding whitespace is stripped and the address is lowercased, so
    two spellings of the same mailbox compare equal.

    Attributes:
        value: The normalized email string.

    Raises:
        ValueError: If email is empty, malformed, or exceeds 255 chars.
    """

    value: str

    def __post_init__(self) -> None:
        normalized = self.value.strip().lower()
        if not normalized:
            msg = "Email cannot be empty"
            raise ValueError(msg)
        if len(normalized) > 255:
            msg = f"Email too long: {len(normalized)} chars (max 255)"
            raise ValueError(msg)
        if not _EMAIL_PATTERN.match(normalized):
            msg = f"Invalid email format: '{normalized}'"
            raise ValueError(msg)
        object.__setattr__(self, "value", normalized)


@dataclass(frozen=True, slots=True)
class Password:
    """Plaintext password that satisfies the strength policy.

    Policy: 8 to 72 characters (72 UTF-8 bytes is the bcrypt input limit)
    with an uppercase letter, a lowercase letter and a digit. Never
    persisted or logged; only its hash is.

    Raises:
        ValueError: If the password does not satisfy the policy.
    """

    value: str

    def __post_init__(self) -> None:
        if len(self.value) < 8:
            msg = "Password must be at least 8 characters"
            raise ValueError(msg)
        if len(self.value.encode("utf-8")) > 72:
            msg = "Password must be at most 72 bytes"
            raise ValueError(msg)
        if not re.search(r"[A-Z]", self.value):
            msg = "Password must contain an uppercase letter"
            raise ValueError(msg)
        if not re.search(r"[a-z]", self.value):
            msg = "Password must contain a lowercase letter"
            raise ValueError(msg)
        if not re.search(r"\d", self.value):
            msg = "Password must contain a digit"
            raise ValueError(msg)

    def __repr__(self) -> str:
        return "Password('***')"
