"""Signed, expiring identity tokens (compact JWTs)."""
from __future__ import annotations

import time
from datetime import timedelta
from typing import Any, Callable, Dict

import jwt

from .errors import TokenExpired, TokenInvalid, TokenMalformed
from .models import Claims

DEFAULT_TOKEN_TTL = timedelta(hours=24)
DEFAULT_ALGORITHM = "HS256"

_REQUIRED_CLAIMS = ["sub", "email", "iss", "iat", "exp"]


class TokenIssuer:
    """Mint and validate tokens with a shared signing secret.

    Instances hold no mutable state after construction and can be shared
    between concurrent requests.  Expiry is compared against ``clock()`` with
    no leeway, so a verifier whose clock runs ahead of the issuer's rejects
    tokens early.  Times keep sub-second precision, so tokens minted for the
    same user at different instants differ.
    """

    def __init__(
        self,
        secret: str,
        issuer: str,
        *,
        algorithm: str = DEFAULT_ALGORITHM,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ValueError("A token signing secret must be provided")
        if not issuer:
            raise ValueError("A token issuer name must be provided")
        self._secret = secret
        self._issuer = issuer
        self._algorithm = algorithm
        self._clock = clock

    @property
    def issuer(self) -> str:
        return self._issuer

    def mint(self, user_id: int, email: str, ttl: timedelta = DEFAULT_TOKEN_TTL) -> str:
        lifetime = ttl.total_seconds()
        if lifetime <= 0:
            raise ValueError("Token TTL must be positive")

        issued_at = self._clock()
        payload: Dict[str, Any] = {
            "sub": str(user_id),
            "email": email,
            "iss": self._issuer,
            "iat": issued_at,
            "exp": issued_at + lifetime,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def validate(self, token: str) -> Claims:
        """Return the claims of ``token`` or raise a :class:`TokenError`."""

        # Signature and structure are checked by PyJWT; expiry is checked
        # below against our own clock once the signature is known to be good.
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                issuer=self._issuer,
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "require": _REQUIRED_CLAIMS,
                },
            )
        except jwt.InvalidSignatureError as exc:
            raise TokenInvalid("Token signature mismatch") from exc
        except jwt.MissingRequiredClaimError as exc:
            raise TokenMalformed(f"Token is missing a required claim: {exc.claim}") from exc
        except jwt.DecodeError as exc:
            raise TokenMalformed("Token could not be decoded") from exc
        except jwt.InvalidTokenError as exc:
            raise TokenInvalid(f"Token rejected: {exc}") from exc

        try:
            claims = Claims(
                sub=int(payload["sub"]),
                email=str(payload["email"]),
                iss=str(payload["iss"]),
                iat=float(payload["iat"]),
                exp=float(payload["exp"]),
            )
        except (TypeError, ValueError) as exc:
            raise TokenMalformed("Token claims have unexpected types") from exc

        if not claims.exp > self._clock():
            raise TokenExpired("Token has expired")
        return claims


__all__ = ["DEFAULT_ALGORITHM", "DEFAULT_TOKEN_TTL", "TokenIssuer"]
