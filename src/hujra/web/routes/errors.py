"""Mapping of ledger errors to HTTP errors."""

from fastapi import HTTPException, status

from hujra.core.ledger import StudentNotFoundError
from hujra.db.backup import InvalidBackupFormatError
from hujra.db.database import StorageUnavailableError
from hujra.utils.validators import MalformedValueError


def to_http_error(error: Exception) -> HTTPException:
    """Translate a ledger exception into the HTTPException to raise."""
    if isinstance(error, StudentNotFoundError):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Student '{error.student_id}' not found",
        )
    if isinstance(error, (InvalidBackupFormatError, MalformedValueError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, StorageUnavailableError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Storage unavailable: {error}",
        )
    raise TypeError(f"No HTTP mapping for {type(error).__name__}")


LEDGER_ERRORS = (
    StudentNotFoundError,
    InvalidBackupFormatError,
    MalformedValueError,
    StorageUnavailableError,
)
