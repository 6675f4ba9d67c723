"""
Global Exception Handlers for Soudan

Error Response Format:
{
    "error": {
        "status_code": 400,
        "type": "Bad Request",
        "reason": "url out of scope"
    }
}

The `reason` field is the short machine-oriented string carried by the
raised SoudanError. Unexpected exceptions are reported with a generic reason
so that no internal detail reaches the caller.
"""

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from soudan.exceptions import SoudanError
from soudan.middleware.logging import record_fault

logger = logging.getLogger(__name__)


def create_error_response(status_code: int, reason: str) -> JSONResponse:
    """Create a standardized error response."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "status_code": status_code,
                "type": get_error_type(status_code),
                "reason": reason,
            }
        },
    )


def get_error_type(status_code: int) -> str:
    """Get a human-readable error type based on status code."""
    error_types = {
        400: "Bad Request",
        404: "Not Found",
        405: "Method Not Allowed",
        500: "Internal Server Error",
    }
    return error_types.get(status_code, "Error")


async def soudan_exception_handler(request: Request, exc: SoudanError) -> JSONResponse:
    """
    Handle request faults raised by the pipeline, the registry or the stores.

    Client faults are logged as warnings, upstream faults as errors with the
    chained cause attached.
    """
    record_fault(request, exc.reason)
    extra = {
        "status_code": exc.status_code,
        "path": request.url.path,
        "origin": request.headers.get("origin"),
    }
    if exc.is_client_error:
        logger.warning(f"Request rejected: {exc.reason}", extra=extra)
    else:
        logger.error(f"Upstream failure: {exc.reason}", exc_info=exc.__cause__ or exc, extra=extra)

    return create_error_response(status_code=exc.status_code, reason=exc.reason)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle routing-level HTTP exceptions (unknown path, wrong method)."""
    logger.warning(f"HTTPException: {exc.detail}", extra={"status_code": exc.status_code, "path": request.url.path})

    return create_error_response(status_code=exc.status_code, reason=str(exc.detail).lower())


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions without exposing internal details."""
    logger.error(
        f"Unhandled exception: {str(exc)}",
        exc_info=True,
        extra={"path": request.url.path, "method": request.method},
    )

    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        reason="internal error",
    )


def register_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(SoudanError, soudan_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    logger.info("Exception handlers registered successfully")
