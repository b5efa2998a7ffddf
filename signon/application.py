"""Application factory that wires configuration into the HTTP service."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI

from .api import create_app
from .config import Settings, load_settings
from .credentials import PasswordHasher
from .database import Database
from .service import AuthService
from .tokens import TokenIssuer

logger = logging.getLogger("signon.application")


def build_service(settings: Settings, *, database: Optional[Database] = None) -> AuthService:
    """Construct an :class:`AuthService` and its collaborators from ``settings``."""

    if database is None:
        database = Database(settings.database_path, timeout=settings.storage_timeout)
        database.initialize()

    issuer = TokenIssuer(settings.token_secret, settings.token_issuer)
    hasher = PasswordHasher(rounds=settings.hash_rounds)
    return AuthService(
        database,
        issuer,
        hasher,
        token_ttl=settings.token_ttl,
        timeout=settings.request_timeout,
        logger=logging.getLogger("signon.auth"),
    )


def create_application(
    *,
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """Create the ASGI application."""

    resolved = settings or load_settings()
    service = build_service(resolved, database=database)
    logger.info("signon configured (env=%s, issuer=%s)", resolved.env, resolved.token_issuer)

    app = create_app(service=service, env=resolved.env)
    app.state.settings = resolved
    return app


__all__ = ["build_service", "create_application"]
