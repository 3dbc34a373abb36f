"""
Error types and the handlers that render them as `{"error": ...}` bodies.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

NOT_SIGNED_IN = "Du måste vara inloggad"
INVALID_REQUEST = "Ogiltig förfrågan"
GENERIC_ERROR = "Ett fel uppstod"
NOT_FOUND = "Hittades inte"


class ApiError(Exception):
    """An error with a status code and a user-facing (Swedish) message."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class DbError(Exception):
    """Raised by database clients when the backend rejects an operation."""


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def _handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    return _error_response(exc.status_code, exc.message)


async def _handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    logger.info("Rejected request to %s: %s", request.url.path, exc.errors())
    return _error_response(400, INVALID_REQUEST)


async def _handle_http_exception(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else GENERIC_ERROR
    if exc.status_code == 404 and message == "Not Found":
        message = NOT_FOUND
    return _error_response(exc.status_code, message)


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    return _error_response(500, GENERIC_ERROR)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _handle_api_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)
    app.add_exception_handler(Exception, _handle_unexpected)
