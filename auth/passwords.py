"""
auth/passwords.py -- bcrypt password hashing.

bcrypt is used directly rather than through passlib: passlib's wrap-bug
detection builds a password longer than 72 bytes, which bcrypt 4.x rejects.

The hash string bcrypt produces embeds the algorithm version, the cost factor
and the salt ("$2b$10$<22-char salt><31-char digest>"), so verify() needs
nothing but the stored hash.

bcrypt hashes at most 72 bytes, and bcrypt 5 raises ValueError for longer
input. AccountService rejects passwords over 72 UTF-8 bytes before they reach
hash(), so a 72-character password of multi-byte characters is a 400, not a 500.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import bcrypt

DEFAULT_ROUNDS = 10


class PasswordHasher:
    """One-way salted hashing with a fixed bcrypt cost factor.

    Usage:
        hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
        stored = hasher.hash("secret1")
        hasher.verify("secret1", stored)  # True
    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        self.rounds = rounds
        # Timing equalization hash. Computed once per hasher so the first
        # unknown-email login is not measurably faster than later ones.
        self._dummy_hash = self.hash("playerauth_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a bcrypt hash of the given plaintext password."""
        return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if the plaintext password matches the bcrypt hash.

        A malformed or empty hash counts as a mismatch.
        """
        if not hashed:
            return False
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            return False

    def verify_dummy(self, plain: str) -> None:
        """Burn one bcrypt check so a missing account costs the same as a wrong password."""
        self.verify(plain, self._dummy_hash)
