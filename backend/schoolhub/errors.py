"""Failure types raised by services and their translation at the HTTP boundary.

Services raise one of the ``Failure`` subclasses below and never build
responses themselves. ``register_error_handlers`` renders every failure as
``{"success": false, "message": ...}`` with the matching status code.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class Failure(Exception):
    """Base class for every failure a request can end with."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal Server Error"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


class Unauthenticated(Failure):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authorized to access this route"


class Forbidden(Failure):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized to perform this action"


class NotFound(Failure):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, id: Any = None, message: Optional[str] = None):
        self.entity = entity
        self.id = id
        if message is None:
            message = f"{entity} not found" if id is None else f"{entity} not found with id of {id}"
        super().__init__(message, {"entity": entity, "id": id})


class Conflict(Failure):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str, key: Optional[Dict[str, Any]] = None):
        self.key = key or {}
        super().__init__(message, {"key": self.key})


class Invalid(Failure):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, field: Optional[str], reason: str):
        self.field = field
        self.reason = reason
        message = f"{field}: {reason}" if field else reason
        super().__init__(message, {"field": field, "reason": reason})


class FailedPrecondition(Failure):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason, {"reason": reason})


class Internal(Failure):
    pass


def _envelope(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message, **extra})


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path"))
        text = error.get("msg", "Invalid value")
        parts.append(f"{location}: {text}" if location else text)
    return ", ".join(parts) or "Invalid request"


def register_error_handlers(app: FastAPI, expose_internals: bool = True) -> None:
    """Install the single translation point from exceptions to responses."""

    @app.exception_handler(Failure)
    async def handle_failure(request: Request, exc: Failure):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return _envelope(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_validation(request: Request, exc: RequestValidationError):
        return _envelope(status.HTTP_400_BAD_REQUEST, _validation_message(exc))

    @app.exception_handler(IntegrityError)
    async def handle_integrity(request: Request, exc: IntegrityError):
        logger.warning(f"Integrity error on {request.method} {request.url.path}: {exc.orig}")
        return _envelope(status.HTTP_409_CONFLICT, "Duplicate field value entered")

    @app.exception_handler(HTTPException)
    async def handle_http(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        extra = {"error": type(exc).__name__} if expose_internals else {}
        return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error", **extra)
