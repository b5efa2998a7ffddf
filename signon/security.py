"""Bearer token authentication for protected routes."""
from __future__ import annotations

import logging

from fastapi import HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .errors import TokenError
from .models import Claims
from .service import AuthService

logger = logging.getLogger("signon.security")

_CHALLENGE = {"WWW-Authenticate": "Bearer"}


class BearerAuth:
    """FastAPI dependency that resolves a request's bearer token to its claims.

    Every token failure collapses to the same 401 response; the specific
    reason is only logged.
    """

    def __init__(self, service: AuthService) -> None:
        self._service = service
        self._bearer = HTTPBearer(auto_error=False)

    async def __call__(self, request: Request) -> Claims:
        credentials: HTTPAuthorizationCredentials | None = await self._bearer(request)  # type: ignore[assignment]
        if credentials is None or credentials.scheme.lower() != "bearer":
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="unauthorized",
                headers=_CHALLENGE,
            )

        try:
            return self._service.authenticate(credentials.credentials)
        except TokenError as exc:
            logger.warning(
                "Rejected bearer token on %s %s: %s",
                request.method,
                request.url.path,
                exc.code,
            )
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=exc.public_message,
                headers=_CHALLENGE,
            ) from exc


__all__ = ["BearerAuth"]
