"""Core module - error taxonomy and logging setup."""

from .errors import (
    MealCoachError,
    ParseFailure,
    ProviderError,
    StorageQuotaExceeded,
    PipelineBusyError,
    EntryNotFoundError,
    InvalidEditError,
)

__all__ = [
    'MealCoachError',
    'ParseFailure',
    'ProviderError',
    'StorageQuotaExceeded',
    'PipelineBusyError',
    'EntryNotFoundError',
    'InvalidEditError',
]
