"""
Shared API utility functions.
"""

from fastapi import HTTPException, status

from core.errors import (
    NotFoundError,
    SignupServiceError,
    SlotConflictError,
    SlotFullError,
    StorageUnavailableError,
    ValidationError,
)

_STATUS_BY_ERROR: list[tuple[type[SignupServiceError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (SlotFullError, status.HTTP_409_CONFLICT),
    (SlotConflictError, status.HTTP_409_CONFLICT),
    (StorageUnavailableError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def http_error(error: SignupServiceError) -> HTTPException:
    """Translate a domain error into the HTTPException the API returns for it."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=error.message)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=error.message,
    )
