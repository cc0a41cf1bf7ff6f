"""
Store Configuration and Type Definitions.

This module provides configuration classes and type definitions shared by
the connection manager, the dispatcher, the aggregator and the large-object
store.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from bson import ObjectId

# Re-export exceptions for convenience
from ...exceptions.store_exceptions import (
    DocumentStoreError,
    ValidationError,
    ConnectionError,
    OperationError,
    NotFoundError,
    SizeMismatchError,
    MissingNameError,
    NothingToInsertError,
)


@dataclass
class StoreConfig:
    """Connection settings for the document store."""
    server_url: str
    db_name: str
    port: str = "27017"
    collections: Dict[str, Any] = field(default_factory=dict)
    scheme: str = "mongodb"
    
    @property
    def url(self) -> str:
        """Connection target as ``scheme://serverURL:port/dbName``."""
        return f"{self.scheme}://{self.server_url}:{self.port}/{self.db_name}"


class Operation(str, Enum):
    """Operations the dispatcher knows how to run."""
    INSERT = "insert"
    FIND = "find"
    UPDATE_ONE = "updateOne"


@dataclass
class DatabaseObject:
    """
    A collection name plus the values to insert or match.
    
    ``update`` is only read by the updateOne operation.
    """
    collection: str
    values: Dict[str, Any] = field(default_factory=dict)
    update: Optional[Dict[str, Any]] = None
    
    @classmethod
    def coerce(cls, obj: Union["DatabaseObject", Mapping[str, Any]]) -> "DatabaseObject":
        """Accept either a DatabaseObject or its ``{collection, values}`` wire shape."""
        if isinstance(obj, cls):
            return obj
        # Keep the caller's values mapping so in-place normalization is visible to them
        return cls(
            collection=obj.get("collection"),
            values=obj["values"] if "values" in obj else {},
            update=obj.get("update"),
        )
    
    def to_dict(self) -> Dict[str, Any]:
        """Wire shape used for schema validation."""
        data: Dict[str, Any] = {"collection": self.collection, "values": self.values}
        if self.update is not None:
            data["update"] = self.update
        return data


@dataclass
class LargeObjectInfo:
    """Description of a stored large object."""
    file_id: Any
    name: str
    length: int
    chunk_size: int
    content_type: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class HealthStatus:
    """Store health check status."""
    status: str  # 'healthy', 'unhealthy', 'unknown'
    connected: bool
    url: str
    collections_count: int
    collections: List[str]
    timestamp: str
    errors: List[str]


# Type aliases for common use cases
Document = Dict[str, Any]
DispatchOptions = Dict[str, Any]
DatabaseObjectLike = Union[DatabaseObject, Mapping[str, Any]]
OperationFn = Callable[[Any, DatabaseObject, DispatchOptions], Awaitable[Any]]


def id_query(value: Any) -> Any:
    """
    Query value matching an ``_id`` given by a caller.
    
    A 24-hex string may name either a string id or an ObjectId, so both
    forms are matched. Every other id is matched as given.
    """
    if isinstance(value, str) and ObjectId.is_valid(value):
        return {"$in": [value, ObjectId(value)]}
    return value
