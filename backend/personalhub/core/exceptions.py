# backend/personalhub/core/exceptions.py
"""
Domain exceptions and the FastAPI handlers that turn them into
``{"code", "message", "timestamp"}`` JSON bodies.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class PersonalHubError(Exception):
    """Base class for errors raised by the service layer."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INTERNAL_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(PersonalHubError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class AccessDeniedError(PersonalHubError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "ACCESS_DENIED"


class ValidationError(PersonalHubError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"


class ConflictError(PersonalHubError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class InvalidStateError(PersonalHubError):
    status_code = status.HTTP_409_CONFLICT
    code = "INVALID_STATE"


class AuthenticationError(PersonalHubError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "AUTHENTICATION_FAILED"


class AccountLockedError(PersonalHubError):
    status_code = status.HTTP_423_LOCKED
    code = "ACCOUNT_LOCKED"


class OAuthError(Exception):
    """RFC 6749 style error (``{"error", "error_description"}``)."""

    def __init__(self, error: str, description: str, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(description)
        self.error = error
        self.description = description
        self.status_code = status_code


def error_body(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> dict:
    body = {
        "code": code,
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if details:
        body["details"] = details
    return body


async def _handle_domain_error(request: Request, exc: PersonalHubError):
    if exc.status_code >= 500:
        logger.error("REQUEST_FAILED path=%s error=%s", request.url.path, exc.message)
    else:
        logger.info("REQUEST_REJECTED path=%s code=%s message=%s", request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.code, exc.message))


async def _handle_validation_error(request: Request, exc: RequestValidationError):
    details = {}
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        details[field or "request"] = err.get("msg", "invalid value")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("VALIDATION_ERROR", "Request validation failed", details),
    )


async def _handle_oauth_error(request: Request, exc: OAuthError):
    logger.info("OAUTH_ERROR path=%s error=%s description=%s", request.url.path, exc.error, exc.description)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error, "error_description": exc.description},
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(PersonalHubError, _handle_domain_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(OAuthError, _handle_oauth_error)
