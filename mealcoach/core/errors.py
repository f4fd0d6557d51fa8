"""
Error taxonomy for the conversation pipeline.

ParseFailure is recovered inside the response parser and never reaches
callers. ProviderError and StorageQuotaExceeded abort the operation in
flight and are surfaced to the user, each with its own message so a
network problem is not confused with a full local store.
"""

from typing import Optional


class MealCoachError(Exception):
    """Base class for all pipeline errors."""


class ParseFailure(MealCoachError):
    """A structured block was found but could not be decoded."""


class ProviderError(MealCoachError):
    """
    The completion provider failed (transport, timeout or invalid request).

    Args:
        message: Human-readable description
        status_code: HTTP status returned by the provider, if any
        is_timeout: True when the request timed out
        retryable: False for errors a retry cannot fix (e.g. a rejected API key)
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        is_timeout: bool = False,
        retryable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.is_timeout = is_timeout
        self.retryable = retryable


class StorageQuotaExceeded(MealCoachError):
    """A persistence write did not fit in the store's quota."""

    def __init__(self, message: str = "Storage quota exceeded. Please clear some data."):
        super().__init__(message)
        self.message = message


class PipelineBusyError(MealCoachError):
    """A send or edit is already in flight."""


class EntryNotFoundError(MealCoachError):
    """No entry exists with the requested id."""


class InvalidEditError(MealCoachError):
    """The requested edit targets an entry that cannot be edited."""
