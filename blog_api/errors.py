"""Typed errors raised by the services and rendered by the HTTP layer."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = logging.getLogger(__name__)


class BlogAPIError(Exception):
    """Base typed error.

    `code` is stable for programmatic handling, `message` is safe to show to
    clients.
    """

    status_code = 500
    code = "internal.error"
    message = "Internal Server Error"

    def __init__(self, message: str | None = None, *, code: str | None = None) -> None:
        if message is not None:
            self.message = message
        if code is not None:
            self.code = code
        super().__init__(self.message)

    @property
    def headers(self) -> dict[str, str] | None:
        return None

    def to_public_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "code": self.code}


class ValidationError(BlogAPIError):
    status_code = 400
    code = "request.validation_error"
    message = "Validation error"


class WeakInputError(ValidationError):
    code = "request.weak_input"
    message = "Password must not be empty"


class DuplicateError(BlogAPIError):
    status_code = 409
    code = "resource.duplicate"
    message = "Resource already exists"


class AuthenticationError(BlogAPIError):
    status_code = 401
    code = "auth.unauthorized"
    message = "Authentication required"

    @property
    def headers(self) -> dict[str, str] | None:
        return {"WWW-Authenticate": "Bearer"}


class InvalidCredentialsError(AuthenticationError):
    code = "auth.invalid_credentials"
    message = "Invalid credentials"


class NoTokenError(AuthenticationError):
    code = "auth.no_token"
    message = "No token provided"


class InvalidTokenError(AuthenticationError):
    code = "auth.invalid_token"
    message = "Invalid token"


class IdentityNotFoundError(AuthenticationError):
    code = "auth.identity_not_found"
    message = "User not found"


class NotFoundError(BlogAPIError):
    status_code = 404
    code = "resource.not_found"
    message = "Not found"


class ForbiddenError(BlogAPIError):
    status_code = 403
    code = "auth.forbidden"
    message = "Forbidden"


class StoreError(BlogAPIError):
    status_code = 500
    code = "store.error"
    message = "Internal Server Error"


def register_exception_handlers(app: FastAPI) -> None:
    """Register the API-wide exception handlers on a FastAPI app."""

    @app.exception_handler(BlogAPIError)
    async def _blog_api_error_handler(request: Request, exc: BlogAPIError) -> Response:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.code}", exc_info=exc)
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_public_dict(),
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else "Invalid request"
        return JSONResponse(
            status_code=ValidationError.status_code,
            content={"detail": message, "code": ValidationError.code},
        )

    @app.exception_handler(SQLAlchemyError)
    async def _store_error_handler(request: Request, exc: SQLAlchemyError) -> Response:
        logger.error(f"Store failure on {request.method} {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(status_code=500, content=StoreError().to_public_dict())

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception) -> Response:
        logger.error(f"Unhandled exception on {request.method} {request.url.path}", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal Server Error", "code": "internal.unhandled"},
        )
