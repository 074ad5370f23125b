"""Password hashing utilities.

bcrypt hashing for account passwords and backup codes.
"""

from __future__ import annotations

from typing import cast

import bcrypt


class PasswordHasher:
    """bcrypt hasher used for account passwords and backup codes.

    Example:
        ```python
        hasher = PasswordHasher()

        hashed = hasher.hash("user_password")
        if hasher.verify(hashed, "user_password"):
            if hasher.needs_rehash(hashed):
                new_hash = hasher.hash("user_password")
        ```
    """

    def __init__(self, *, rounds: int = 10) -> None:
        """Initialize the hasher.

        Args:
            rounds: bcrypt cost factor (default 10).
        """
        self.rounds = rounds

    def hash(self, plaintext: str) -> str:
        """Hash a password or backup code.

        Args:
            plaintext: Value to hash.

        Returns:
            Salted bcrypt digest.
        """
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(plaintext.encode(), salt).decode()

    def verify(self, hashed: str, plaintext: str) -> bool:
        """Check a plaintext value against a stored digest.

        Args:
            hashed: The stored digest.
            plaintext: Candidate value.

        Returns:
            True if it matches. Malformed digests never match.
        """
        try:
            return cast("bool", bcrypt.checkpw(plaintext.encode(), hashed.encode()))
        except ValueError:
            # Invalid hash format or malformed hash
            return False

    def needs_rehash(self, hashed: str) -> bool:
        """Whether a digest was produced with a lower cost than configured.

        bcrypt format: ``$2b$10$...``
        """
        parts = hashed.split("$")
        if len(parts) >= 3:
            try:
                return int(parts[2]) < self.rounds
            except ValueError:
                pass
        return False


__all__: list[str] = ["PasswordHasher"]
