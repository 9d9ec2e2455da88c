"""Mapping of folio errors to HTTP responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..errors import (
    AlreadyExistsError,
    FolioError,
    InvalidDurationError,
    NotAFileError,
    NotFoundError,
    PathInvalidError,
    PayloadTooLargeError,
)
from .schemas import MessageResponse

logger = logging.getLogger(__name__)

# Errors not listed here (I/O, scheduler dispatch, id exhaustion) map to 500
STATUS_CODES: dict[type[FolioError], int] = {
    PathInvalidError: 400,
    InvalidDurationError: 400,
    NotAFileError: 400,
    NotFoundError: 404,
    AlreadyExistsError: 409,
    PayloadTooLargeError: 413,
}


def status_for(exc: FolioError) -> int:
    """HTTP status for an error, honoring subclassing."""
    for cls in type(exc).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return 500


async def folio_error_handler(request: Request, exc: FolioError) -> JSONResponse:
    """Render a FolioError as ``{"message": ...}`` with its status code."""
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(
            f"{request.method} {request.url.path} failed: {exc}",
            extra={"error_type": type(exc).__name__},
        )
    return JSONResponse(
        status_code=status_code,
        content=MessageResponse(message=str(exc)).model_dump(),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FolioError, folio_error_handler)
