"""Service errors and their HTTP rendering.

Every failure the API reports is a `ServiceError` carrying a short machine-readable
`detail` code. Handlers render them as `{"error": detail}` with the matching status.
Anything else that escapes a route becomes a bare 500 with no internals attached.
"""

from __future__ import annotations

from typing import Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


def _debug(msg: str) -> None:
    print(f"[errors] {msg}")


class ServiceError(Exception):
    status_code: int = 500
    default_detail: str = "internal_error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def headers(self) -> Optional[Dict[str, str]]:
        return None


class BadRequest(ServiceError):
    status_code = 400
    default_detail = "bad_request"


class Unauthorized(ServiceError):
    """Login rejected (bad credentials, account without a password)."""

    status_code = 401
    default_detail = "invalid_credentials"


class Unauthenticated(ServiceError):
    """A protected request without a usable token."""

    status_code = 401
    default_detail = "token_invalid"

    def __init__(self, detail: Optional[str] = None, *, state: Optional[str] = None):
        super().__init__(detail)
        # Which gate check failed. Kept for logs/tests, never sent to the client.
        self.state = state

    def headers(self) -> Optional[Dict[str, str]]:
        return {"WWW-Authenticate": "Bearer"}


class NotFound(ServiceError):
    status_code = 404
    default_detail = "not_found"


class Conflict(ServiceError):
    status_code = 409
    default_detail = "conflict"


class InternalError(ServiceError):
    status_code = 500
    default_detail = "internal_error"


async def _service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=exc.headers(),
    )


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Same shape as BadRequest.
    return JSONResponse(status_code=400, content={"error": "invalid_request"})


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    _debug(f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": "internal_error"})


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, _service_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
