"""
API error types and the JSON error envelope.

Services raise one of the ``ApiError`` subclasses below when a
request cannot be fulfilled.  Handlers registered by
``register_error_handlers`` turn them, as well as FastAPI's own
``HTTPException`` and request validation errors, into a uniform
response body::

    {"error": {"kind": "not_found", "message": "...", "klass": "NotFoundError"}}
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind: str = "internal_server_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequestError(ApiError):
    """The request is malformed or violates a business rule."""

    status_code = status.HTTP_400_BAD_REQUEST
    kind = "bad_request"


class UnauthorizedError(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    kind = "unauthorized"


class ForbiddenError(ApiError):
    """The caller is authenticated but lacks the required permission."""

    status_code = status.HTTP_403_FORBIDDEN
    kind = "forbidden"


class NotFoundError(ApiError):
    """The requested record does not exist or is not visible to the caller."""

    status_code = status.HTTP_404_NOT_FOUND
    kind = "not_found"


# Kinds used when rendering plain HTTPExceptions raised by FastAPI or by
# dependencies such as ``get_current_user``.
_KIND_BY_STATUS = {
    status.HTTP_400_BAD_REQUEST: BadRequestError.kind,
    status.HTTP_401_UNAUTHORIZED: UnauthorizedError.kind,
    status.HTTP_403_FORBIDDEN: ForbiddenError.kind,
    status.HTTP_404_NOT_FOUND: NotFoundError.kind,
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
}


def error_body(kind: str, message: str, klass: str) -> Dict[str, Any]:
    return {"error": {"kind": kind, "message": message, "klass": klass}}


def _error_response(
    status_code: int,
    kind: str,
    message: str,
    klass: str,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_body(kind, message, klass), headers=headers)


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    logger.info("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.kind)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthorizedError) else None
    return _error_response(exc.status_code, exc.kind, exc.message, type(exc).__name__, headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    kind = _KIND_BY_STATUS.get(exc.status_code, "http_error")
    return _error_response(
        exc.status_code,
        kind,
        str(exc.detail),
        type(exc).__name__,
        getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render pydantic validation failures as ``bad_request``.

    Only the first problem is reported in ``message``; the full list is
    kept under ``error.details`` for clients that want it.
    """
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    body = error_body(BadRequestError.kind, message, type(exc).__name__)
    body["error"]["details"] = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in errors
    ]
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)


def register_error_handlers(app: FastAPI) -> None:
    """Attach the error envelope handlers to ``app``."""
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
