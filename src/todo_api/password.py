from __future__ import annotations

import bcrypt

DEFAULT_COST = 10
# bcrypt only looks at the first 72 bytes of its input.
MAX_PASSWORD_BYTES = 72
MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 72


class PasswordHashError(Exception):
    """Hashing or verification could not be performed (not a mismatch)."""


def _encode(plaintext: str) -> bytes:
    return plaintext.encode("utf-8")[:MAX_PASSWORD_BYTES]


# PUBLIC_INTERFACE
class PasswordHasher:
    """
    One-way bcrypt hashing for user credentials.

    The work factor is tunable; every extra point doubles the CPU cost of both
    hashing and verification. Inputs longer than 72 bytes are truncated the
    same way on hash and verify so a stored hash always matches its password.
    """

    def __init__(self, cost: int = DEFAULT_COST) -> None:
        self._cost = cost

    @property
    def cost(self) -> int:
        return self._cost

    def hash(self, plaintext: str) -> str:
        """Return a self-describing salted hash (``$2b$<cost>$...``)."""
        try:
            hashed = bcrypt.hashpw(_encode(plaintext), bcrypt.gensalt(rounds=self._cost))
        except ValueError as e:
            raise PasswordHashError(f"failed to hash password: {e}") from e
        return hashed.decode("ascii")

    def verify(self, plaintext: str, hashed: str) -> bool:
        """
        Return True when ``plaintext`` matches ``hashed`` and False on mismatch.

        Raises:
            PasswordHashError: the stored hash is malformed.
        """
        try:
            return bcrypt.checkpw(_encode(plaintext), hashed.encode("ascii"))
        except (ValueError, UnicodeEncodeError) as e:
            raise PasswordHashError(f"password verification failed: {e}") from e

