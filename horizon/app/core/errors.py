"""
app/core/errors.py - Error taxonomy shared by the resolver, services and routers.

- AuthError: bad credential, expired/revoked session, already-registered email.
- QueryError: constraint violation, policy rejection, network failure on a collection call.
- InvokeError: a proxied SMS/payment function failed or timed out.
- ValidationError: form checks that block an action before any remote call.

Each error carries a short machine-readable `code`; routers surface the message
through the exception handlers registered in `register_exception_handlers`.
"""
from typing import Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


class HorizonError(Exception):
    """Base class for domain-level errors."""

    default_code = "error"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class AuthError(HorizonError):
    default_code = "auth_failed"


class QueryError(HorizonError):
    default_code = "query_failed"

    @property
    def is_unique_violation(self) -> bool:
        return self.code == UNIQUE_VIOLATION

    @property
    def is_not_found(self) -> bool:
        return self.code == NOT_FOUND


class InvokeError(HorizonError):
    default_code = "invoke_failed"


class ValidationError(HorizonError):
    """Invalid form input; `fields` maps each failing field to its message."""

    default_code = "validation_failed"

    def __init__(self, message: str, fields: Optional[Dict[str, str]] = None, code: Optional[str] = None):
        super().__init__(message, code)
        self.fields = fields or {}


# QueryError codes
UNIQUE_VIOLATION = "unique_violation"
NOT_FOUND = "not_found"

# AuthError codes
ALREADY_REGISTERED = "already_registered"
INVALID_CREDENTIALS = "invalid_credentials"
SESSION_EXPIRED = "session_expired"
NOT_ADMIN = "not_admin"


def _error_body(exc: HorizonError) -> dict:
    body = {"detail": exc.message, "code": exc.code}
    if isinstance(exc, ValidationError) and exc.fields:
        body["fields"] = exc.fields
    return body


def _status_for(exc: HorizonError) -> int:
    if isinstance(exc, ValidationError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, AuthError):
        if exc.code == ALREADY_REGISTERED:
            return status.HTTP_409_CONFLICT
        if exc.code == NOT_ADMIN:
            return status.HTTP_403_FORBIDDEN
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(exc, QueryError):
        if exc.is_unique_violation:
            return status.HTTP_409_CONFLICT
        if exc.is_not_found:
            return status.HTTP_404_NOT_FOUND
        return status.HTTP_502_BAD_GATEWAY
    if isinstance(exc, InvokeError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def register_exception_handlers(app: FastAPI) -> None:
    """Render domain errors as `{"detail", "code"}` JSON; the action is never retried."""

    @app.exception_handler(HorizonError)
    async def _handle_horizon_error(request: Request, exc: HorizonError) -> JSONResponse:
        return JSONResponse(status_code=_status_for(exc), content=_error_body(exc))
