"""
Document Store Package - MongoDB Integration.

This package provides the data-access layer in front of the document store:
- Shared connection management (connection.py)
- Validated generic CRUD dispatch (dispatcher.py, regex.py)
- Federated search across collections (aggregator.py, probe.py)
- Chunked large-object storage (large_objects.py, dotted_keys.py)
- Configuration and type definitions (types.py)
"""

# Import core managers
from .connection import ConnectionManager
from .dispatcher import OperationDispatcher
from .probe import CollectionProbe
from .aggregator import CrossCollectionAggregator, UNRESOLVED_COLLECTION
from .large_objects import LargeObjectStore
from .regex import normalize_regex
from .dotted_keys import unflatten

# Import type definitions and configuration
from .types import (
    StoreConfig,
    Operation,
    DatabaseObject,
    LargeObjectInfo,
    HealthStatus,
    Document,
    DispatchOptions,
    DatabaseObjectLike,
    # Exception re-exports
    DocumentStoreError,
    ValidationError,
    ConnectionError,
    OperationError,
    NotFoundError,
    SizeMismatchError,
    MissingNameError,
    NothingToInsertError,
)

from ...utils.config import ConfigManager, SchemaValidator

import logging
from pathlib import Path
from typing import Any, AsyncIterator, Callable, List, Mapping, Optional, Sequence, Union


class DocumentGateway:
    """
    Main Document Store Gateway.
    
    Provides a unified interface for all store operations by coordinating
    the connection manager, the dispatcher, the aggregator and the
    large-object store. All of them share one connection.
    
    This is the primary entry point for application code.
    """
    
    def __init__(
        self,
        config_manager: Optional[ConfigManager] = None,
        store_config: Optional[StoreConfig] = None,
        client_factory: Optional[Callable[..., Any]] = None,
        bucket_factory: Optional[Callable[..., Any]] = None,
    ) -> None:
        """
        Initialize the gateway.
        
        Args:
            config_manager: Configuration manager instance (creates new if None)
            store_config: Connection settings (overrides config)
            client_factory: Client constructor (defaults to AsyncIOMotorClient)
            bucket_factory: GridFS bucket constructor (defaults to AsyncIOMotorGridFSBucket)
        """
        if store_config is None:
            self.config_manager = config_manager or ConfigManager()
            store_config = self.config_manager.store_config()
        else:
            self.config_manager = config_manager
        self.logger = logging.getLogger(__name__)
        
        self.connection = ConnectionManager(store_config, client_factory=client_factory)
        self.dispatcher = OperationDispatcher(self.connection, SchemaValidator())
        self.probe = CollectionProbe(self.connection)
        self.aggregator = CrossCollectionAggregator(self.dispatcher, self.probe)
        self.large_objects = LargeObjectStore(self.connection, bucket_factory=bucket_factory)
    
    async def __aenter__(self) -> "DocumentGateway":
        return self
    
    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close_connection()
    
    # Connection operations
    @property
    def is_connected(self) -> bool:
        """Check if a verified store handle is held."""
        return self.connection.is_connected
    
    async def initialize(self) -> None:
        """Connect to the store and verify it answers a ping."""
        await self.connection.get_database()
    
    async def health_check(self) -> HealthStatus:
        """Perform comprehensive health check."""
        return await self.connection.health_check()
    
    def close_connection(self) -> None:
        """Close the shared store connection."""
        self.connection.close()
    
    # Document operations (delegate to OperationDispatcher)
    async def insert(self, db_object: DatabaseObjectLike) -> Any:
        """Insert ``values`` into ``collection`` with an acknowledged write."""
        return await self.dispatcher.dispatch(Operation.INSERT, {"writeConcern": 1}, db_object)
    
    async def query(
        self,
        db_object: DatabaseObjectLike,
        options: Optional[DispatchOptions] = None,
    ) -> List[Document]:
        """Find documents in ``collection`` matching ``values``."""
        return await self.dispatcher.dispatch(Operation.FIND, options, db_object)
    
    async def query_one(self, db_object: DatabaseObjectLike) -> Optional[Document]:
        """Find the first document matching ``values``, or None."""
        docs = await self.dispatcher.dispatch(Operation.FIND, {"limit": 1}, db_object)
        return docs[0] if docs else None
    
    async def insert_or_update(
        self,
        filter_object: DatabaseObjectLike,
        update: Mapping[str, Any],
    ) -> Any:
        """
        Update the first document matching the filter, inserting it if absent.
        
        A plain ``update`` mapping is applied as ``$set``.
        """
        obj = DatabaseObject.coerce(filter_object)
        obj = DatabaseObject(collection=obj.collection, values=obj.values, update=dict(update))
        return await self.dispatcher.dispatch(Operation.UPDATE_ONE, {"upsert": True}, obj)
    
    # Aggregated search (delegate to CrossCollectionAggregator)
    async def query_all(
        self,
        objects: Sequence[DatabaseObjectLike],
        count: Optional[int] = None,
    ) -> List[Document]:
        """Query several collections and merge the results in order."""
        return await self.aggregator.query_all(objects, limit=count)
    
    async def resolve_owner(self, doc_id: Any) -> Optional[str]:
        """Name the collection holding ``doc_id``, or None."""
        return await self.probe.resolve_owner(doc_id)
    
    # Large-object operations (delegate to LargeObjectStore)
    async def write_large_object(
        self,
        name: str,
        metadata: Optional[Mapping[str, Any]],
        payload: Any,
        content_type: Optional[str] = None,
        verify: bool = True,
    ) -> LargeObjectInfo:
        """Store a payload as a large object."""
        return await self.large_objects.write(
            name, metadata, payload, content_type=content_type, verify=verify
        )
    
    async def write_file(
        self,
        path: Union[str, Path],
        name: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
        content_type: Optional[str] = None,
    ) -> LargeObjectInfo:
        """Store a local file as a large object."""
        return await self.large_objects.write_file(
            path, name=name, metadata=metadata, content_type=content_type
        )
    
    async def read_large_object(self, name: str) -> bytes:
        """Read a whole large object by name."""
        return await self.large_objects.read(name)
    
    async def open_read_stream(self, name: str) -> AsyncIterator[bytes]:
        """Open a large object by name as an async iterator of chunks."""
        return await self.large_objects.read_stream(name)
    
    async def object_exists(self, file_id: Any) -> bool:
        """Check whether a large object with this id exists."""
        return await self.large_objects.exists(file_id)
    
    async def file_is_listed(self, name: str) -> bool:
        """Check whether any large object has this name."""
        return await self.large_objects.is_listed(name)
    
    async def remove_object(self, file_id: Any) -> None:
        """Delete a large object."""
        await self.large_objects.remove(file_id)


def create_gateway(
    config_manager: Optional[ConfigManager] = None,
    store_config: Optional[StoreConfig] = None,
    **kwargs: Any,
) -> DocumentGateway:
    """
    Factory function to create a DocumentGateway instance.
    
    Args:
        config_manager: Configuration manager instance
        store_config: Connection settings (overrides config)
        **kwargs: Passed through to DocumentGateway
        
    Returns:
        Configured DocumentGateway instance
    """
    return DocumentGateway(config_manager=config_manager, store_config=store_config, **kwargs)


__all__ = [
    'DocumentGateway',
    'create_gateway',
    'ConnectionManager',
    'OperationDispatcher',
    'CollectionProbe',
    'CrossCollectionAggregator',
    'LargeObjectStore',
    'UNRESOLVED_COLLECTION',
    'normalize_regex',
    'unflatten',
    'StoreConfig',
    'Operation',
    'DatabaseObject',
    'LargeObjectInfo',
    'HealthStatus',
    'Document',
    'DispatchOptions',
    'DatabaseObjectLike',
    'DocumentStoreError',
    'ValidationError',
    'ConnectionError',
    'OperationError',
    'NotFoundError',
    'SizeMismatchError',
    'MissingNameError',
    'NothingToInsertError',
]
