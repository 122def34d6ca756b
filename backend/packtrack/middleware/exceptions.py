"""Custom exception handlers for consistent error responses.

Every error leaves the API as::

    {"error": {"code": "ERROR_CODE", "message": "...", "details": {...}}}

Services raise the ``PackTrackException`` family; storage errors propagate
out of the routers untouched and are mapped here after the request session
has rolled back.
"""

import logging
from typing import Union

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError
from starlette.exceptions import HTTPException as StarletteHTTPException

from packtrack.config import settings

logger = logging.getLogger(__name__)


class PackTrackException(Exception):
    """Base exception for PackTrack application errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "INTERNAL_ERROR"

    def __init__(self, message: str, error_code: str | None = None):
        self.message = message
        self.error_code = error_code or self.default_code
        super().__init__(message)


class BusinessLogicError(PackTrackException):
    """A request that is well-formed but breaks a domain rule."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "BUSINESS_LOGIC_ERROR"


class ResourceNotFoundError(PackTrackException):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "RESOURCE_NOT_FOUND"

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}")


class ConflictError(PackTrackException):
    """Duplicate keys and state conflicts (e.g. dispatching a departed load)."""

    status_code = status.HTTP_409_CONFLICT
    default_code = "CONFLICT"


# (substring of the driver message, status, code, message); first match wins
_INTEGRITY_RULES = (
    ("unique", status.HTTP_409_CONFLICT, "DUPLICATE_RECORD",
     "A record with this value already exists"),
    ("duplicate", status.HTTP_409_CONFLICT, "DUPLICATE_RECORD",
     "A record with this value already exists"),
    ("foreign key", status.HTTP_400_BAD_REQUEST, "FOREIGN_KEY_VIOLATION",
     "Referenced record does not exist"),
    ("not null", status.HTTP_400_BAD_REQUEST, "NULL_VALUE_NOT_ALLOWED",
     "Required field is missing"),
)


def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "ERROR",
    details: Union[dict, list, None] = None,
    headers: dict | None = None,
) -> JSONResponse:
    """Build the error envelope; ``details`` is omitted when empty."""
    error = {"code": error_code, "message": message}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error}, headers=headers)


def _context(request: Request, **extra) -> dict:
    return {"path": request.url.path, "method": request.method, **extra}


async def packtrack_exception_handler(
    request: Request,
    exc: PackTrackException,
) -> JSONResponse:
    logger.warning(
        f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}",
        extra=_context(request, error_code=exc.error_code),
    )
    return create_error_response(exc.status_code, exc.message, exc.error_code)


async def http_exception_handler(
    request: Request,
    exc: Union[HTTPException, StarletteHTTPException],
) -> JSONResponse:
    """401/403/404 raised by FastAPI itself or by the auth dependencies."""
    if exc.status_code >= 500:
        logger.error(f"HTTP {exc.status_code}: {exc.detail}", extra=_context(request))

    return create_error_response(
        status_code=exc.status_code,
        message=str(exc.detail),
        error_code=f"HTTP_{exc.status_code}",
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: Union[RequestValidationError, ValidationError],
) -> JSONResponse:
    """Pydantic failures become a 400 with one entry per offending field."""
    errors = [
        {
            "field": " -> ".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.warning(
        f"Validation error on {request.url.path}: {len(errors)} field(s)",
        extra=_context(request),
    )
    return create_error_response(
        status_code=status.HTTP_400_BAD_REQUEST,
        message="Validation error",
        error_code="VALIDATION_ERROR",
        details={"errors": errors},
    )


async def integrity_exception_handler(
    request: Request,
    exc: IntegrityError,
) -> JSONResponse:
    """Constraint violations that slipped past the service-level checks."""
    driver_message = str(exc.orig if exc.orig is not None else exc).lower()
    logger.error(f"Integrity error on {request.url.path}: {driver_message}", extra=_context(request))

    for needle, status_code, code, message in _INTEGRITY_RULES:
        if needle in driver_message:
            return create_error_response(status_code, message, code)
    return create_error_response(
        status.HTTP_400_BAD_REQUEST, "Database constraint violation", "INTEGRITY_ERROR"
    )


async def stale_data_exception_handler(
    request: Request,
    exc: StaleDataError,
) -> JSONResponse:
    """A versioned row changed underneath this request."""
    logger.warning(f"Concurrent update rejected on {request.url.path}: {exc}", extra=_context(request))
    return create_error_response(
        status_code=status.HTTP_409_CONFLICT,
        message="The record was modified by another request. Reload and retry.",
        error_code="CONCURRENT_UPDATE",
    )


async def operational_exception_handler(
    request: Request,
    exc: OperationalError,
) -> JSONResponse:
    logger.error(f"Database unavailable on {request.url.path}: {exc}", extra=_context(request))
    return create_error_response(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        message="Database temporarily unavailable. Please try again.",
        error_code="DATABASE_UNAVAILABLE",
    )


async def general_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    logger.error(
        f"Unhandled {exc.__class__.__name__} on {request.url.path}: {exc}",
        extra=_context(request),
        exc_info=exc,
    )

    message = "An unexpected error occurred. Please try again later."
    if settings.debug and settings.environment != "production":
        message = f"{message} ({exc.__class__.__name__}: {exc})"
    return create_error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, message, "INTERNAL_SERVER_ERROR"
    )


_HANDLERS = (
    (PackTrackException, packtrack_exception_handler),
    (HTTPException, http_exception_handler),
    (StarletteHTTPException, http_exception_handler),
    (RequestValidationError, validation_exception_handler),
    (ValidationError, validation_exception_handler),
    (IntegrityError, integrity_exception_handler),
    (StaleDataError, stale_data_exception_handler),
    (OperationalError, operational_exception_handler),
    (Exception, general_exception_handler),
)


def register_exception_handlers(app) -> None:
    """Register all custom exception handlers with FastAPI app."""
    for exc_class, handler in _HANDLERS:
        app.add_exception_handler(exc_class, handler)
