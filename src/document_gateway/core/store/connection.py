"""
Document Store Connection Management.

This module owns the single process-wide store handle. Every other
component borrows the handle through ``ConnectionManager`` instead of
opening its own connection.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from gridfs.errors import NoFile
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import ConnectionFailure, InvalidOperation

from .types import (
    StoreConfig,
    HealthStatus,
    DocumentStoreError,
    ConnectionError,
    NotFoundError,
    OperationError,
)


class ConnectionManager:
    """
    Store Client Manager.
    
    The handle is created lazily on the first successful connect (verified
    with a ``ping``) and then shared by reference. Only ``close`` (explicit
    shutdown) and ``invalidate`` (unrecoverable connection failure) drop
    it; after ``invalidate`` the next call reconnects.
    """
    
    def __init__(
        self,
        config: StoreConfig,
        client_factory: Optional[Callable[..., Any]] = None,
        server_selection_timeout_ms: int = 5000,
    ) -> None:
        """
        Initialize the connection manager.
        
        Args:
            config: Store connection settings
            client_factory: Callable building a client from a URL
                (defaults to ``AsyncIOMotorClient``)
            server_selection_timeout_ms: How long the driver waits for a server
        """
        self.config = config
        self.client_factory = client_factory or AsyncIOMotorClient
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self.logger = logging.getLogger(__name__)
        
        self._client: Optional[Any] = None
        self._database: Optional[Any] = None
        self._connect_task: Optional[asyncio.Future] = None
        self._generation = 0
    
    @property
    def url(self) -> str:
        return self.config.url
    
    @property
    def is_connected(self) -> bool:
        """Check if a verified handle is currently held."""
        return self._client is not None and self._database is not None
    
    async def get_database(self) -> Any:
        """
        Get the shared database handle, connecting if necessary.
        
        Concurrent first callers await the same pending connect.
        
        Raises:
            ConnectionError: If the store cannot be reached
        """
        if self._database is not None:
            return self._database
        
        if self._connect_task is None:
            self._connect_task = asyncio.ensure_future(self._connect())
        
        return await asyncio.shield(self._connect_task)
    
    async def _connect(self) -> Any:
        self.logger.debug(f"Connecting to {self.url}")
        client = None
        
        try:
            client = self.client_factory(
                self.url,
                serverSelectionTimeoutMS=self.server_selection_timeout_ms,
            )
            database = client[self.config.db_name]
            await database.command("ping")
        except Exception as e:
            if client is not None:
                client.close()
            self._connect_task = None
            error_msg = f"Could not connect to {self.url}: {e}"
            self.logger.error(error_msg)
            raise ConnectionError(error_msg) from e
        
        self._client = client
        self._database = database
        self._generation += 1
        self._connect_task = None
        self.logger.info(f"Database connection to {self.url} has been established")
        return database
    
    @property
    def generation(self) -> int:
        """
        Counter identifying the current handle; it grows with every connect.
        
        Callers read it right after borrowing a handle and pass it to
        ``translate_error`` so a late failure on a replaced handle does not
        close the new one.
        """
        return self._generation
    
    async def get_collection(self, name: str) -> Any:
        """Get a collection handle from the shared database."""
        database = await self.get_database()
        return database[name]
    
    async def list_collection_names(self) -> List[str]:
        """List every collection in the connected database."""
        database = await self.get_database()
        generation = self._generation
        try:
            return await database.list_collection_names()
        except Exception as e:
            raise self.translate_error("db.collections", e, generation) from e
    
    def translate_error(
        self,
        entity: str,
        error: BaseException,
        generation: Optional[int] = None,
    ) -> DocumentStoreError:
        """
        Map a driver error onto the store error taxonomy.
        
        Connection-class failures (including use of a closed client)
        invalidate the shared handle so the next call reconnects.
        
        Args:
            entity: Short description of what failed, for the log
            error: The exception raised by the driver
            generation: Handle generation the failing call used
                (None means the current handle)
            
        Returns:
            The exception to raise to the caller
        """
        if isinstance(error, DocumentStoreError):
            return error
        
        self.logger.error(f"There was an error with {entity}: {error}")
        
        if isinstance(error, NoFile):
            return NotFoundError(f"{entity}: {error}")
        if isinstance(error, (ConnectionFailure, InvalidOperation)):
            self.invalidate(f"{entity} failed", generation)
            return ConnectionError(f"{entity}: {error}")
        return OperationError(f"{entity}: {error}")
    
    def invalidate(self, reason: str, generation: Optional[int] = None) -> None:
        """
        Drop the shared handle after an unrecoverable connection failure.
        
        Other in-flight operations may fail with a closed-handle error;
        they surface as ConnectionError and reconnect on their next call.
        A failure reported for an older generation leaves the current
        handle open.
        """
        if self._client is None:
            return
        if generation is not None and generation != self._generation:
            self.logger.debug(f"Keeping store connection; {reason} on a replaced handle")
            return
        self.logger.warning(f"Closing store connection: {reason}")
        client = self._client
        self._client = None
        self._database = None
        client.close()
    
    def close(self) -> None:
        """Close the shared handle. Only safe when nothing is in flight."""
        if self._client is None:
            return
        self._client.close()
        self._client = None
        self._database = None
        self.logger.info(f"Connection to {self.url} closed")
    
    async def health_check(self) -> HealthStatus:
        """
        Perform a health check against the store.
        
        Returns:
            Health status with detailed information
        """
        health_status = HealthStatus(
            status='unknown',
            connected=False,
            url=self.url,
            collections_count=0,
            collections=[],
            timestamp=datetime.now(timezone.utc).isoformat(),
            errors=[]
        )
        
        try:
            database = await self.get_database()
            await database.command("ping")
            health_status.connected = True
            
            names = await self.list_collection_names()
            health_status.collections_count = len(names)
            health_status.collections = sorted(names)
            
            health_status.status = 'healthy'
            self.logger.info(f"The store at {self.url} is operational")
        
        except Exception as e:
            error_msg = f"Health check failed: {e}"
            health_status.errors.append(error_msg)
            health_status.status = 'unhealthy'
            self.logger.error(error_msg)
        
        return health_status
