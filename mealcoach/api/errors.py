"""
Maps pipeline errors onto HTTP errors.
"""

from fastapi import HTTPException, status

from ..core.errors import (
    EntryNotFoundError,
    InvalidEditError,
    PipelineBusyError,
    ProviderError,
    StorageQuotaExceeded,
)

_STATUS_BY_ERROR = (
    (ProviderError, status.HTTP_502_BAD_GATEWAY, "provider"),
    (StorageQuotaExceeded, status.HTTP_507_INSUFFICIENT_STORAGE, "storage"),
    (PipelineBusyError, status.HTTP_409_CONFLICT, "busy"),
    (EntryNotFoundError, status.HTTP_404_NOT_FOUND, "not_found"),
    (InvalidEditError, status.HTTP_400_BAD_REQUEST, "invalid_edit"),
    (ValueError, status.HTTP_400_BAD_REQUEST, "invalid_request"),
)


def error_kind(error: Exception) -> str:
    for error_type, _, kind in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return kind
    return "internal"


def to_http_exception(error: Exception) -> HTTPException:
    """Build the HTTPException for a pipeline error."""
    for error_type, status_code, kind in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(
                status_code=status_code,
                detail={"kind": kind, "message": str(error)},
            )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"kind": "internal", "message": str(error)},
    )


HANDLED_ERRORS = tuple(error_type for error_type, _, _ in _STATUS_BY_ERROR)
