from fastapi import status
from sqlalchemy.exc import IntegrityError, OperationalError

from finpulse.core.errors import (
    ERROR_MESSAGES,
    ErrorCode,
    create_error_response,
    get_error_code_for_exception,
)


def test_every_error_code_has_a_message():
    assert set(ERROR_MESSAGES) == set(ErrorCode)


def test_exceptions_map_to_codes_and_statuses():
    assert get_error_code_for_exception(
        OperationalError("SELECT", None, Exception("down"))
    ) == (ErrorCode.DATABASE_UNAVAILABLE, status.HTTP_503_SERVICE_UNAVAILABLE)
    assert get_error_code_for_exception(
        IntegrityError("INSERT", None, Exception("dup"))
    ) == (ErrorCode.DATABASE_CONFLICT, status.HTTP_409_CONFLICT)
    assert get_error_code_for_exception(ValueError("bad")) == (
        ErrorCode.VALIDATION_ERROR,
        status.HTTP_400_BAD_REQUEST,
    )
    assert get_error_code_for_exception(RuntimeError("boom")) == (
        ErrorCode.INTERNAL_ERROR,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def test_invalid_period_response():
    error = create_error_response(ErrorCode.INVALID_PERIOD)

    assert error.status_code == status.HTTP_400_BAD_REQUEST
    assert error.detail == {
        "error_code": "invalid_period",
        "message": ERROR_MESSAGES[ErrorCode.INVALID_PERIOD],
    }
