"""Domain models for accounts and the tokens issued to them."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from .credentials import Credential, SetCredential


def normalize_email(email: str) -> str:
    """Return the canonical form used for comparison and storage."""

    return email.strip().lower()


@dataclass(frozen=True)
class PublicUser:
    """Account fields that may be returned to a caller."""

    id: int
    email: str
    created_at: datetime


@dataclass(frozen=True)
class User:
    """Represents a user account stored in the signon database."""

    id: int
    email: str
    created_at: datetime
    credential: SetCredential = field(repr=False, compare=False)

    def public(self) -> PublicUser:
        return PublicUser(id=self.id, email=self.email, created_at=self.created_at)


@dataclass(frozen=True)
class NewUser:
    """An account waiting to be inserted; storage assigns id and timestamp."""

    email: str
    credential: Credential = field(repr=False)


@dataclass(frozen=True)
class Claims:
    """Fields asserted by a signed identity token."""

    sub: int
    email: str
    iss: str
    iat: float
    exp: float

    @property
    def issued_at(self) -> datetime:
        return datetime.fromtimestamp(self.iat, tz=timezone.utc)

    @property
    def expires_at(self) -> datetime:
        return datetime.fromtimestamp(self.exp, tz=timezone.utc)


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a successful sign-up or sign-in."""

    token: str
    user: PublicUser


__all__ = ["AuthResult", "Claims", "NewUser", "PublicUser", "User", "normalize_email"]
