from __future__ import annotations

from fastapi import HTTPException, status

from studynotes.core.errors import (
    BackendQueryError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    StudyNotesError,
    ValidationError,
)

_STATUS_BY_ERROR: list[tuple[type[StudyNotesError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (StorageError, status.HTTP_502_BAD_GATEWAY),
    (BackendQueryError, status.HTTP_502_BAD_GATEWAY),
]


def to_http_exception(err: StudyNotesError) -> HTTPException:
    """Map a domain error onto the HTTP status the client should see."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(err, error_type):
            return HTTPException(status_code=status_code, detail=str(err))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")
