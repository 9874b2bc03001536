"""Port for hashing passwords before they reach the user record."""

from __future__ import annotations

from typing import Protocol


class PasswordHasherPort(Protocol):
    """Password hashing/verification contract."""

    def hash_password(self, password: str) -> str:
        """Return an opaque hash suitable for `IdentityUser.password_hash`."""

    def verify_password(self, *, password: str, password_hash: str) -> bool:
        """Return whether plaintext matches a stored hash."""
