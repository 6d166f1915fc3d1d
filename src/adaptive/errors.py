"""
Error taxonomy for the adaptive scheduler.

Only two conditions are exceptional:
- EmptyInputError: the selector was asked to choose from zero items.
- StorageUnavailable: a durable adapter could not read or write.

Unknown item ids are not errors; lookups return None ("never seen").
"""

from __future__ import annotations


class AdaptiveError(Exception):
    """Base class for adaptive scheduler errors."""


class EmptyInputError(AdaptiveError, ValueError):
    """Raised when select_next() receives no candidate items."""


class StorageUnavailable(AdaptiveError):
    """Raised by a storage adapter when its backing store refuses an operation."""

    def __init__(self, operation: str, key: str | None = None):
        self.operation = operation
        self.key = key
        detail = f"{operation}({key})" if key else operation
        super().__init__(f"Storage unavailable during {detail}")
