"""Storage boundary consumed by :class:`signon.service.AuthService`."""
from __future__ import annotations

from typing import Optional, Protocol

from .models import NewUser, User


class UserRepository(Protocol):
    """Persistence for user accounts.

    ``insert_user`` must be atomic with respect to email uniqueness: when two
    inserts race on one normalized email, at most one succeeds and the other
    raises :class:`~signon.errors.DuplicateEmail`.  Implementations enforce
    this with a storage-level unique constraint, never with a prior lookup.
    Any other storage failure raises :class:`~signon.errors.StorageError`.
    """

    def find_user_by_email(self, email: str) -> Optional[User]:
        ...

    def insert_user(self, new_user: NewUser) -> User:
        ...


__all__ = ["UserRepository"]
