"""
Core modules for the document gateway.

This package contains the data-access components: connection management,
CRUD dispatch, cross-collection search and large-object storage.
"""

from .store import (
    DocumentGateway,
    create_gateway,
)

__all__ = [
    "DocumentGateway",
    "create_gateway",
]
