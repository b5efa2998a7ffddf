"""Error taxonomy shared by the credential, token and storage layers."""
from __future__ import annotations


class AuthError(Exception):
    """Base class for every failure surfaced by the authentication core.

    ``code`` identifies the failure internally (logs, tests) while
    ``public_message`` is the only text that may reach an HTTP client.
    """

    code = "auth_error"
    public_message = "authentication failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)


class ValidationError(AuthError):
    """Raised when caller input is missing or malformed."""

    code = "validation_error"
    public_message = "invalid input"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message)
        # Caller-correctable reason, exposed verbatim.
        if message:
            self.public_message = message


class InvalidEmail(ValidationError):
    code = "invalid_email"
    public_message = "email address is invalid"


class PasswordNotSet(ValidationError):
    code = "password_not_set"
    public_message = "password must be set before signing up"


class EmailTaken(AuthError):
    code = "email_taken"
    public_message = "email already taken"


class DuplicateEmail(AuthError):
    """Raised by storage when the unique email constraint rejects an insert."""

    code = "duplicate_email"
    public_message = "email already taken"


class InvalidCredentials(AuthError):
    """Outward sign-in failure; never reveals which check failed."""

    code = "invalid_credentials"
    public_message = "invalid credentials"


class UserNotFound(InvalidCredentials):
    code = "user_not_found"


class InvalidPassword(InvalidCredentials):
    code = "invalid_password"


class TokenError(AuthError):
    code = "token_error"
    public_message = "unauthorized"


class TokenInvalid(TokenError):
    code = "token_invalid"


class TokenExpired(TokenError):
    code = "token_expired"


class TokenMalformed(TokenError):
    code = "token_malformed"


class InternalError(AuthError):
    """Infrastructure failure; details are logged, never returned."""

    code = "internal_error"
    public_message = "the server encountered a problem"


class HashingFailure(InternalError):
    code = "hashing_failure"


class StorageError(InternalError):
    code = "storage_error"


class OperationCancelled(InternalError):
    """Raised when a storage or hashing call exceeds its deadline."""

    code = "operation_cancelled"


__all__ = [
    "AuthError",
    "DuplicateEmail",
    "EmailTaken",
    "HashingFailure",
    "InternalError",
    "InvalidCredentials",
    "InvalidEmail",
    "InvalidPassword",
    "OperationCancelled",
    "PasswordNotSet",
    "StorageError",
    "TokenError",
    "TokenExpired",
    "TokenInvalid",
    "TokenMalformed",
    "UserNotFound",
    "ValidationError",
]
