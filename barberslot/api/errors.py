from fastapi import HTTPException, status

from ..core.exceptions import (
    BookingError,
    DuplicateOverride,
    InvalidDate,
    InvalidTransition,
    NotFound,
    SlotFull,
    ValidationError,
)

_STATUS_BY_ERROR = (
    (NotFound, status.HTTP_404_NOT_FOUND),
    (SlotFull, status.HTTP_409_CONFLICT),
    (DuplicateOverride, status.HTTP_409_CONFLICT),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (InvalidDate, status.HTTP_400_BAD_REQUEST),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
)


def http_error(exc: BookingError) -> HTTPException:
    """Translate a domain error into the HTTP response the routers return."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
