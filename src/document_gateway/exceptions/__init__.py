"""
Exceptions package for the document gateway.

This package contains custom exception classes for configuration handling
and document store operations.
"""

from .config_exceptions import (
    ConfigurationError,
    ConfigurationFileNotFoundError,
    ConfigurationValidationError,
)

from .store_exceptions import (
    DocumentStoreError,
    ValidationError,
    ConnectionError,
    OperationError,
    NotFoundError,
    SizeMismatchError,
    MissingNameError,
    NothingToInsertError,
)

__all__ = [
    # Configuration exceptions
    "ConfigurationError",
    "ConfigurationFileNotFoundError",
    "ConfigurationValidationError",
    # Store exceptions
    "DocumentStoreError",
    "ValidationError",
    "ConnectionError",
    "OperationError",
    "NotFoundError",
    "SizeMismatchError",
    "MissingNameError",
    "NothingToInsertError",
]
