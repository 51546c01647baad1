"""
Error Handling Utilities
Provides sanitized error messages and consistent error responses.
"""

import logging
from enum import Enum
from typing import Optional

from fastapi import HTTPException, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

logger = logging.getLogger(__name__)

# Returned by every engine operation when the workspace cannot be resolved
NOT_AUTHENTICATED = "No autenticado"


class ErrorCode(str, Enum):
    """Error codes for frontend handling."""

    # Identity
    NOT_AUTHENTICATED = "not_authenticated"

    # Persistence errors
    DATABASE_UNAVAILABLE = "database_unavailable"
    DATABASE_CONFLICT = "database_conflict"
    PERSISTENCE_FAILED = "persistence_failed"

    # Data errors
    INVALID_PERIOD = "invalid_period"

    # General errors
    VALIDATION_ERROR = "validation_error"
    INTERNAL_ERROR = "internal_error"


# User-friendly error messages
ERROR_MESSAGES = {
    ErrorCode.NOT_AUTHENTICATED: NOT_AUTHENTICATED,
    ErrorCode.DATABASE_UNAVAILABLE: "The database is not reachable right now. Please try again in a moment.",
    ErrorCode.DATABASE_CONFLICT: "The record was changed by another request. Please try again.",
    ErrorCode.PERSISTENCE_FAILED: "Your changes could not be saved. Please try again later.",
    ErrorCode.INVALID_PERIOD: "Invalid period. Use the YYYY-MM format.",
    ErrorCode.VALIDATION_ERROR: "Invalid request. Please check your input and try again.",
    ErrorCode.INTERNAL_ERROR: "An unexpected error occurred. Please try again later.",
}


def sanitize_error_message(
    exception: Exception,
    error_code: ErrorCode,
    log_details: bool = True,
) -> str:
    """
    Sanitize error message for user-facing responses.

    Logs full exception details internally but returns user-friendly message.

    Args:
        exception: The exception that occurred
        error_code: Error code for categorization
        log_details: Whether to log full exception details

    Returns:
        User-friendly error message
    """
    if log_details:
        logger.error(
            "Error [%s]: %s",
            error_code.value,
            str(exception),
            exc_info=exception,
        )

    return ERROR_MESSAGES.get(error_code, ERROR_MESSAGES[ErrorCode.INTERNAL_ERROR])


def get_error_code_for_exception(exception: Exception) -> tuple[ErrorCode, int]:
    """
    Map exception types to error codes and HTTP status codes.

    Args:
        exception: The exception that occurred

    Returns:
        Tuple of (error_code, http_status_code)
    """
    if isinstance(exception, OperationalError):
        return ErrorCode.DATABASE_UNAVAILABLE, status.HTTP_503_SERVICE_UNAVAILABLE

    if isinstance(exception, IntegrityError):
        return ErrorCode.DATABASE_CONFLICT, status.HTTP_409_CONFLICT

    if isinstance(exception, SQLAlchemyError):
        return ErrorCode.PERSISTENCE_FAILED, status.HTTP_500_INTERNAL_SERVER_ERROR

    if isinstance(exception, ValueError):
        return ErrorCode.VALIDATION_ERROR, status.HTTP_400_BAD_REQUEST

    # Default to internal error
    return ErrorCode.INTERNAL_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR


async def global_exception_handler(_request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for FastAPI.

    Catches all unhandled exceptions and returns sanitized error responses.
    Excludes HTTPException (intentional responses) and ValidationError (FastAPI validation).
    """
    # Don't handle HTTPException - those are intentional responses
    if isinstance(exc, HTTPException):
        raise exc

    # Don't handle RequestValidationError - FastAPI handles this
    if isinstance(exc, RequestValidationError):
        raise exc

    error_code, http_status = get_error_code_for_exception(exc)
    message = sanitize_error_message(exc, error_code)

    return JSONResponse(
        status_code=http_status,
        content={
            "error_code": error_code.value,
            "message": message,
        },
    )


def create_error_response(
    error_code: ErrorCode,
    message: Optional[str] = None,
    http_status: Optional[int] = None,
) -> HTTPException:
    """
    Create a standardized HTTPException with error code.

    Args:
        error_code: Error code enum
        message: Optional custom message (uses default if not provided)
        http_status: Optional HTTP status code (uses default if not provided)

    Returns:
        HTTPException with standardized format
    """
    if message is None:
        message = ERROR_MESSAGES.get(error_code, ERROR_MESSAGES[ErrorCode.INTERNAL_ERROR])

    if http_status is None:
        if error_code == ErrorCode.NOT_AUTHENTICATED:
            http_status = status.HTTP_401_UNAUTHORIZED
        elif error_code == ErrorCode.DATABASE_UNAVAILABLE:
            http_status = status.HTTP_503_SERVICE_UNAVAILABLE
        elif error_code in [ErrorCode.VALIDATION_ERROR, ErrorCode.INVALID_PERIOD]:
            http_status = status.HTTP_400_BAD_REQUEST
        else:
            http_status = status.HTTP_500_INTERNAL_SERVER_ERROR

    return HTTPException(
        status_code=http_status,
        detail={
            "error_code": error_code.value,
            "message": message,
        },
    )
