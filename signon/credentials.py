"""Password credentials and the hashing primitive behind them.

A credential is either *unset* (only the plaintext received from a request is
known) or *set* (only the one-way hash is known).  The two states are separate
types so code paths that verify against a missing hash are explicit rather
than ``None`` checks.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from passlib.context import CryptContext

from .errors import HashingFailure

_SCHEME = "pbkdf2_sha256"

# Work factor for new hashes. Only configuration may change it.
DEFAULT_HASH_ROUNDS = 600_000


class PasswordHasher:
    """Salted one-way hashing with constant-time verification."""

    def __init__(self, rounds: int = DEFAULT_HASH_ROUNDS) -> None:
        if rounds < 1:
            raise ValueError("Hash rounds must be a positive integer")
        self._rounds = rounds
        self._context = CryptContext(
            schemes=[_SCHEME],
            **{f"{_SCHEME}__default_rounds": rounds},
        )

    @property
    def rounds(self) -> int:
        return self._rounds

    def hash(self, plaintext: str) -> str:
        try:
            return self._context.hash(plaintext)
        except (ValueError, TypeError) as exc:
            raise HashingFailure(f"Password hashing failed: {exc.__class__.__name__}") from exc

    def verify(self, plaintext: str, hashed: str) -> bool:
        """Return whether ``plaintext`` matches ``hashed``.

        A secret or hash the primitive rejects up front (oversized secret,
        malformed hash) still costs one full verification, so a refusal
        takes as long as a mismatch.
        """

        try:
            return self._context.verify(plaintext, hashed)
        except (ValueError, TypeError):
            self.dummy_verify()
            return False

    def dummy_verify(self) -> None:
        """Spend the time of one verification without a stored hash."""

        self._context.dummy_verify()


@dataclass(frozen=True)
class UnsetCredential:
    """A plaintext secret that has not been hashed yet."""

    plaintext: str = field(repr=False)

    def set(self, hasher: PasswordHasher) -> "SetCredential":
        return SetCredential(hash=hasher.hash(self.plaintext))

    def verify(self, candidate: str, hasher: PasswordHasher) -> bool:
        # Same cost as a real comparison, same answer as a mismatch.
        hasher.dummy_verify()
        return False


@dataclass(frozen=True)
class SetCredential:
    """A stored password hash. The plaintext is never retained."""

    hash: str = field(repr=False)

    def verify(self, candidate: str, hasher: PasswordHasher) -> bool:
        return hasher.verify(candidate, self.hash)


Credential = Union[UnsetCredential, SetCredential]


__all__ = [
    "Credential",
    "DEFAULT_HASH_ROUNDS",
    "PasswordHasher",
    "SetCredential",
    "UnsetCredential",
]
