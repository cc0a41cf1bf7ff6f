"""
Document store exceptions for the document gateway.

This module defines the exception classes raised by CRUD dispatch,
cross-collection aggregation and large-object storage.
"""

from typing import Any, List, Optional


class DocumentStoreError(Exception):
    """
    Base exception for document store operations.
    
    This is the parent class for all store related errors.
    """
    pass


class ValidationError(DocumentStoreError):
    """
    Raised when a payload fails schema validation.
    
    No store call is issued once this error has been raised.
    """
    
    def __init__(self, message: str, errors: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.errors = errors or []
    
    def __str__(self) -> str:
        msg = super().__str__()
        if self.errors:
            msg += ": " + "; ".join(self.errors)
        return msg


class ConnectionError(DocumentStoreError):
    """
    Raised when the store is unreachable or the shared handle is stale.
    
    The shared handle is closed before this error reaches the caller, so
    the next call reconnects.
    """
    pass


class OperationError(DocumentStoreError):
    """Raised when the store rejects a specific CRUD or GridFS call."""
    pass


class NotFoundError(DocumentStoreError):
    """Raised when a large object does not exist."""
    pass


class SizeMismatchError(DocumentStoreError):
    """
    Raised when a verified write reads back a different byte count.
    
    The bytes were written; callers should treat the object as needing
    cleanup.
    """
    
    def __init__(self, expected: int, actual: int, file_id: Any = None) -> None:
        super().__init__(
            f"size mismatch for large object {file_id}: wrote {expected} bytes, read back {actual}"
        )
        self.expected = expected
        self.actual = actual
        self.file_id = file_id


class MissingNameError(DocumentStoreError):
    """Raised when a large object write has no name."""
    pass


class NothingToInsertError(DocumentStoreError):
    """Raised when a large object write has neither metadata nor payload."""
    pass
