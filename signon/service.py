"""Sign-up and sign-in orchestration."""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Callable, Optional, TypeVar

import anyio

from .credentials import PasswordHasher, UnsetCredential
from .errors import (
    DuplicateEmail,
    EmailTaken,
    InternalError,
    InvalidEmail,
    InvalidPassword,
    OperationCancelled,
    PasswordNotSet,
    UserNotFound,
    ValidationError,
)
from .models import AuthResult, Claims, NewUser, normalize_email
from .repository import UserRepository
from .tokens import DEFAULT_TOKEN_TTL, TokenIssuer

T = TypeVar("T")

# Longest secret, in UTF-8 bytes, the hashing primitive accepts.
MAX_PASSWORD_LENGTH = 4096

DEFAULT_OPERATION_TIMEOUT = 10.0


class AuthService:
    """Register accounts, verify credentials and mint identity tokens.

    Every collaborator is passed in, so the service can be exercised against
    any :class:`UserRepository`.  Hashing and storage calls are blocking; they
    run in worker threads, each bounded by ``timeout`` seconds (``None`` for
    no bound).  A call that overruns is abandoned and reported as
    :class:`OperationCancelled`; the worker thread still finishes on its own,
    so an abandoned insert may have committed.  Cancellation of the calling
    task propagates unchanged.
    """

    def __init__(
        self,
        repository: UserRepository,
        issuer: TokenIssuer,
        hasher: PasswordHasher,
        *,
        token_ttl: timedelta = DEFAULT_TOKEN_TTL,
        timeout: Optional[float] = DEFAULT_OPERATION_TIMEOUT,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._repository = repository
        self._issuer = issuer
        self._hasher = hasher
        self._token_ttl = token_ttl
        self._timeout = timeout
        self._logger = logger or logging.getLogger("signon.auth")

    async def sign_up(self, email: str, password: str) -> AuthResult:
        normalized_email = normalize_email(email or "")
        if not normalized_email or "@" not in normalized_email:
            raise InvalidEmail()
        if not password:
            raise PasswordNotSet()
        if len(password.encode("utf-8")) > MAX_PASSWORD_LENGTH:
            raise ValidationError(f"password must be at most {MAX_PASSWORD_LENGTH} bytes")

        try:
            credential = await self._run(UnsetCredential(password).set, self._hasher)
            user = await self._run(
                self._repository.insert_user,
                NewUser(email=normalized_email, credential=credential),
            )
        except DuplicateEmail as exc:
            self._logger.info("Sign-up rejected for %s: email already registered", normalized_email)
            raise EmailTaken() from exc
        except InternalError:
            self._logger.exception("Sign-up failed for %s", normalized_email)
            raise

        token = self._issuer.mint(user.id, user.email, self._token_ttl)
        self._logger.info("Registered user %s (%s)", user.id, user.email)
        return AuthResult(token=token, user=user.public())

    async def sign_in(self, email: str, password: str) -> AuthResult:
        normalized_email = normalize_email(email or "")

        try:
            user = await self._run(self._repository.find_user_by_email, normalized_email)
            if user is None:
                await self._run(self._hasher.dummy_verify)
                self._logger.warning("Failed sign-in attempt for %s: unknown account", normalized_email)
                raise UserNotFound()

            verified = await self._run(user.credential.verify, password or "", self._hasher)
        except InternalError:
            self._logger.exception("Sign-in failed for %s", normalized_email)
            raise

        if not verified:
            self._logger.warning("Failed sign-in attempt for user %s: wrong password", user.id)
            raise InvalidPassword()

        token = self._issuer.mint(user.id, user.email, self._token_ttl)
        self._logger.info("User %s signed in", user.id)
        return AuthResult(token=token, user=user.public())

    def authenticate(self, token: str) -> Claims:
        """Validate a bearer token and return its claims."""

        return self._issuer.validate(token)

    async def _run(self, func: Callable[..., T], *args: object) -> T:
        try:
            with anyio.fail_after(self._timeout):
                return await anyio.to_thread.run_sync(func, *args, abandon_on_cancel=True)
        except TimeoutError as exc:
            raise OperationCancelled(
                f"{getattr(func, '__qualname__', func)!s} exceeded {self._timeout}s"
            ) from exc


__all__ = ["AuthService", "DEFAULT_OPERATION_TIMEOUT", "MAX_PASSWORD_LENGTH"]
