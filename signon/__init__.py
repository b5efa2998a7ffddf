"""Credential and token core for the signon authentication service."""

from __future__ import annotations

from typing import Any

from .credentials import PasswordHasher, SetCredential, UnsetCredential
from .database import Database, resolve_database_path
from .models import AuthResult, Claims, PublicUser, User
from .service import AuthService
from .tokens import TokenIssuer


def create_application(*args: Any, **kwargs: Any):
    """Factory function that returns the configured HTTP application."""

    from .application import create_application as _create_application

    return _create_application(*args, **kwargs)


__all__ = [
    "AuthResult",
    "AuthService",
    "Claims",
    "Database",
    "PasswordHasher",
    "PublicUser",
    "SetCredential",
    "TokenIssuer",
    "UnsetCredential",
    "User",
    "create_application",
    "resolve_database_path",
]
