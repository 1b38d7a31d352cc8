"""Global exception handlers.

``error_response`` is the one place an exception becomes an HTTP response:
- AppError → its own status and envelope
- RequestValidationError → VALIDATION_ERROR with per-field details, or BAD_REQUEST for a malformed body
- Starlette HTTPException (unknown route, wrong method) → the matching error kind
- anything else → INTERNAL_ERROR, logged with traceback, never leaking details
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import AppError, BadRequest, Forbidden, InternalError, NotFound, Unauthorized
from .middleware import REQUEST_ID_HEADER
from .validation import translate_request_errors

logger = logging.getLogger(__name__)


def _from_http_exception(exc: StarletteHTTPException) -> AppError:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return NotFound()
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        return Unauthorized()
    if exc.status_code == status.HTTP_403_FORBIDDEN:
        return Forbidden()
    if exc.status_code >= 500:
        return InternalError()
    message = exc.detail if isinstance(exc.detail, str) else BadRequest.default_message
    return BadRequest(message, status_code=exc.status_code)


def to_app_error(exc: Exception) -> AppError:
    """Coerce any exception into one of the known error kinds."""
    if isinstance(exc, AppError):
        return exc
    if isinstance(exc, RequestValidationError):
        return translate_request_errors(exc.errors())
    if isinstance(exc, StarletteHTTPException):
        return _from_http_exception(exc)
    return InternalError()


# PUBLIC_INTERFACE
def error_response(request: Request, exc: Exception) -> JSONResponse:
    """Translate ``exc`` into the error envelope and log server-side faults."""
    app_error = to_app_error(exc)
    if app_error is not exc and isinstance(app_error, InternalError):
        logger.error(
            "unexpected error on %s %s: %s",
            request.method,
            request.url.path,
            exc,
            exc_info=exc,
            extra={"error_code": app_error.code, "path": request.url.path},
        )
    elif app_error.status_code >= 500:
        logger.error(
            "server error: %s",
            app_error,
            exc_info=app_error.__cause__ or app_error.__context__,
            extra={
                "error_code": app_error.code,
                "status": app_error.status_code,
                "path": request.url.path,
            },
        )
    elif isinstance(exc, RequestValidationError):
        logger.debug("validation error on %s: %s", request.url.path, app_error.details)
    response = JSONResponse(status_code=app_error.status_code, content=app_error.to_response())
    # The catch-all handler runs outside RequestIDMiddleware, so the header is set here too.
    request_id = getattr(request.state, "request_id", None) or request.headers.get(REQUEST_ID_HEADER)
    if request_id:
        response.headers[REQUEST_ID_HEADER] = request_id
    return response


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return error_response(request, exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(request, exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return error_response(request, exc)

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all: never leaks internal details."""
        return error_response(request, exc)
