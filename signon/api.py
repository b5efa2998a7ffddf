"""HTTP API for account registration, sign-in and token introspection."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .errors import (
    AuthError,
    EmailTaken,
    InternalError,
    InvalidCredentials,
    TokenError,
    ValidationError,
)
from .models import AuthResult, Claims
from .security import BearerAuth
from .service import AuthService

logger = logging.getLogger("signon.api")

API_VERSION = "0.1.0"


class CredentialsRequest(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    id: int
    email: str
    created_at: datetime


class AuthResponse(BaseModel):
    token: str
    user: UserResponse


class IdentityResponse(BaseModel):
    id: int
    email: str
    issued_at: datetime
    expires_at: datetime


def _result_to_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(
        token=result.token,
        user=UserResponse(
            id=result.user.id,
            email=result.user.email,
            created_at=result.user.created_at,
        ),
    )


def _status_for(exc: AuthError) -> int:
    if isinstance(exc, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, EmailTaken):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, (InvalidCredentials, TokenError)):
        return status.HTTP_401_UNAUTHORIZED
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def register_exception_handlers(app: FastAPI) -> None:
    """Translate the error taxonomy into JSON responses."""

    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError) -> JSONResponse:
        status_code = _status_for(exc)
        if isinstance(exc, InternalError):
            # The service already logged the traceback.
            logger.error("internal error on %s %s: %s", request.method, request.url.path, exc.code)
        else:
            logger.warning("%s on %s %s", exc.code, request.method, request.url.path)

        headers = None
        if isinstance(exc, TokenError):
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(
            status_code=status_code,
            content={"detail": exc.public_message},
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_bad_payload(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("bad request on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "invalid request payload"},
        )


def register_api_routes(
    app: FastAPI,
    service: AuthService,
    *,
    current_identity: BearerAuth,
    env: str,
) -> None:
    """Expose the JSON API endpoints on the provided FastAPI application."""

    @app.get("/v1/health")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok", "env": env, "version": API_VERSION}

    @app.post(
        "/v1/auth/signup",
        response_model=AuthResponse,
        status_code=status.HTTP_201_CREATED,
    )
    async def sign_up(request: CredentialsRequest) -> AuthResponse:
        result = await service.sign_up(request.email, request.password)
        return _result_to_response(result)

    @app.post("/v1/auth/signin", response_model=AuthResponse)
    async def sign_in(request: CredentialsRequest) -> AuthResponse:
        result = await service.sign_in(request.email, request.password)
        return _result_to_response(result)

    @app.get("/v1/auth/me", response_model=IdentityResponse)
    async def whoami(claims: Claims = Depends(current_identity)) -> IdentityResponse:
        return IdentityResponse(
            id=claims.sub,
            email=claims.email,
            issued_at=claims.issued_at,
            expires_at=claims.expires_at,
        )


def create_app(*, service: AuthService, env: str = "development") -> FastAPI:
    """Instantiate the FastAPI application around an :class:`AuthService`."""

    app = FastAPI(
        title="signon",
        version=API_VERSION,
        description="Account registration and token issuance.",
    )
    app.state.auth_service = service

    register_exception_handlers(app)
    register_api_routes(app, service, current_identity=BearerAuth(service), env=env)
    return app


__all__ = ["create_app", "register_api_routes", "register_exception_handlers"]
