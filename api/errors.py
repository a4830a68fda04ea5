"""FastAPI exception handlers for UNMASK errors.

This module maps UnmaskError subclasses to HTTP status codes with a
standardized response format.

Response Format:
    {
        "success": false,
        "error": "Human-readable error message",
        "code": "ERROR_CODE",
        "type": "ErrorClassName",
        "details": {...}  # Optional additional context
    }

Usage:
    from api.errors import register_exception_handlers

    app = FastAPI()
    register_exception_handlers(app)
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from unmask.errors import (
    AgentError,
    ConfigurationError,
    DatabaseError,
    ErrorCode,
    LLMError,
    RecordNotFoundError,
    UnmaskError,
    ValidationError,
    VectorizeError,
)

logger = logging.getLogger(__name__)


# HTTP status code mapping for error types, most specific first
ERROR_STATUS_CODES: dict[type[UnmaskError], int] = {
    ValidationError: 400,
    RecordNotFoundError: 404,
    DatabaseError: 500,
    ConfigurationError: 500,
    LLMError: 503,
    VectorizeError: 503,
    AgentError: 500,
    UnmaskError: 500,
}

# Map specific error codes to HTTP status codes (overrides class-based mapping)
ERROR_CODE_STATUS_CODES: dict[ErrorCode, int] = {
    # 400 Bad Request
    ErrorCode.VAL_INVALID_INPUT: 400,
    ErrorCode.VAL_MISSING_REQUIRED: 400,
    ErrorCode.VAL_TYPE_ERROR: 400,
    ErrorCode.DB_CONSTRAINT: 400,
    # 404 Not Found
    ErrorCode.DB_NOT_FOUND: 404,
    ErrorCode.AGT_UNKNOWN: 404,
    ErrorCode.VEC_NO_MESSAGES: 404,
    # 500 Internal Server Error
    ErrorCode.VEC_DIMENSION_MISMATCH: 500,
    # 503 Service Unavailable
    ErrorCode.LLM_NOT_CONFIGURED: 503,
    ErrorCode.LLM_REQUEST_FAILED: 503,
    ErrorCode.LLM_TIMEOUT: 503,
    ErrorCode.LLM_EMBEDDING_FAILED: 503,
    ErrorCode.VEC_SEARCH_FAILED: 503,
}


def get_status_code_for_error(error: UnmaskError) -> int:
    """Determine the appropriate HTTP status code for an error.

    First checks if the error's code has a specific status mapping,
    then falls back to the error class hierarchy.

    Args:
        error: The UNMASK error instance.

    Returns:
        HTTP status code (400-599).
    """
    if error.code in ERROR_CODE_STATUS_CODES:
        return ERROR_CODE_STATUS_CODES[error.code]

    for error_class, status_code in ERROR_STATUS_CODES.items():
        if isinstance(error, error_class):
            return status_code

    return 500


def build_error_response(error: UnmaskError) -> dict[str, Any]:
    """Build a standardized error response dictionary."""
    return error.to_dict()


async def unmask_error_handler(request: Request, exc: UnmaskError) -> JSONResponse:
    """Handle UnmaskError and subclasses.

    Args:
        request: The FastAPI request object.
        exc: The UNMASK error that was raised.

    Returns:
        JSONResponse with appropriate status code and error body.
    """
    status_code = get_status_code_for_error(exc)

    if status_code >= 500:
        logger.error(
            "Server error on %s %s: %s (code=%s, status=%d)",
            request.method,
            request.url.path,
            exc.message,
            exc.code.value,
            status_code,
            exc_info=exc.cause if exc.cause else exc,
        )
    else:
        logger.warning(
            "Client error on %s %s: %s (code=%s, status=%d)",
            request.method,
            request.url.path,
            exc.message,
            exc.code.value,
            status_code,
        )

    headers = {"Retry-After": "30"} if status_code == 503 else None
    return JSONResponse(
        status_code=status_code,
        content=build_error_response(exc),
        headers=headers,
    )


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed bodies and query parameters as 400 validation errors."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"

    logger.debug(
        "Request validation failed on %s %s: %s",
        request.method,
        request.url.path,
        message,
    )

    error = ValidationError(message, field=location or None, code=ErrorCode.VAL_INVALID_INPUT)
    return JSONResponse(status_code=400, content=build_error_response(error))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions with a generic error response.

    This is a catch-all handler for exceptions that aren't UnmaskError
    subclasses. It logs the full exception and returns a safe error message.
    """
    logger.exception(
        "Unexpected error handling %s %s: %s",
        request.method,
        request.url.path,
        str(exc),
    )

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "An unexpected error occurred. Please try again later.",
            "code": "INTERNAL_ERROR",
            "type": "InternalError",
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all UNMASK exception handlers with a FastAPI app.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(UnmaskError, unmask_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError,
        request_validation_error_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.debug("Registered UNMASK exception handlers")


__all__ = [
    "ERROR_CODE_STATUS_CODES",
    "ERROR_STATUS_CODES",
    "build_error_response",
    "generic_exception_handler",
    "get_status_code_for_error",
    "register_exception_handlers",
    "request_validation_error_handler",
    "unmask_error_handler",
]
