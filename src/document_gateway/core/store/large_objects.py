"""
Large Object Storage on GridFS.

This module writes and reads binary payloads in chunks through the store's
GridFS buckets, attaches nested metadata and verifies written sizes by
reading the object back.
"""

import logging
import os
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Dict, List, Mapping, Optional, Tuple, Union

from motor.motor_asyncio import AsyncIOMotorGridFSBucket

from .connection import ConnectionManager
from .dotted_keys import unflatten
from .types import (
    LargeObjectInfo,
    DocumentStoreError,
    MissingNameError,
    NothingToInsertError,
    SizeMismatchError,
    ValidationError,
    id_query,
)

DEFAULT_CHUNK_SIZE = 255 * 1024
CONTENT_TYPE_KEY = "contentType"


def _is_empty_payload(payload: Any) -> bool:
    if payload is None:
        return True
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return len(payload) == 0
    # Streams can't be inspected without consuming them
    return False


def _as_bytes(chunk: Any) -> bytes:
    # bytes(5) would silently become five zero bytes
    if not isinstance(chunk, (bytes, bytearray, memoryview)):
        raise ValidationError(
            f"large object chunks must be bytes-like, got {type(chunk).__name__}"
        )
    return bytes(chunk)


async def _iter_chunks(payload: Any, chunk_size: int) -> AsyncIterator[bytes]:
    """Yield a payload as byte chunks of at most ``chunk_size``."""
    if payload is None:
        return
    if isinstance(payload, (bytes, bytearray, memoryview)):
        data = memoryview(payload).cast("B")
        for start in range(0, len(data), chunk_size):
            yield bytes(data[start:start + chunk_size])
    elif hasattr(payload, "read"):
        while True:
            chunk = payload.read(chunk_size)
            if not chunk:
                break
            yield _as_bytes(chunk)
    elif hasattr(payload, "__aiter__"):
        async for chunk in payload:
            yield _as_bytes(chunk)
    elif isinstance(payload, str):
        raise ValidationError("large object payload must be bytes, not str")
    else:
        for chunk in payload:
            yield _as_bytes(chunk)


class LargeObjectStore:
    """
    Chunked binary storage with metadata and post-write verification.
    """
    
    def __init__(
        self,
        connection: ConnectionManager,
        bucket_name: str = "fs",
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        bucket_factory: Optional[Callable[..., Any]] = None,
    ) -> None:
        """
        Initialize the large-object store.
        
        Args:
            connection: Shared connection manager
            bucket_name: GridFS bucket name
            chunk_size: Default chunk size in bytes
            bucket_factory: Callable building a bucket from a database
                (defaults to ``AsyncIOMotorGridFSBucket``)
        """
        self.connection = connection
        self.bucket_name = bucket_name
        self.chunk_size = chunk_size
        self.bucket_factory = bucket_factory or AsyncIOMotorGridFSBucket
        self.logger = logging.getLogger(__name__)
    
    async def _bucket(self) -> Tuple[Any, int]:
        """Build a bucket on the shared handle, paired with the handle's generation."""
        database = await self.connection.get_database()
        generation = self.connection.generation
        return self.bucket_factory(database, bucket_name=self.bucket_name), generation
    
    async def write(
        self,
        name: str,
        metadata: Optional[Mapping[str, Any]] = None,
        payload: Any = None,
        content_type: Optional[str] = None,
        verify: bool = True,
        file_id: Any = None,
        chunk_size: Optional[int] = None,
    ) -> LargeObjectInfo:
        """
        Store a payload as a large object.
        
        Args:
            name: Object name
            metadata: Metadata; dotted keys are stored as nested mappings
            payload: Bytes, a binary file object, or an (async) iterable of byte chunks
            content_type: MIME type, stored as ``metadata.contentType``
            verify: Read the object back and compare its length
            file_id: Id for the object (generated if None)
            chunk_size: Chunk size in bytes (store default if None)
            
        Returns:
            LargeObjectInfo describing the stored object
            
        Raises:
            MissingNameError: If ``name`` is empty (no store call is made)
            NothingToInsertError: If both metadata and payload are empty
            SizeMismatchError: If the read-back length differs from the bytes written
        """
        if not name:
            raise MissingNameError("large object name is required")
        if not metadata and _is_empty_payload(payload):
            raise NothingToInsertError(f"nothing to insert for large object '{name}'")
        if metadata is not None and not isinstance(metadata, Mapping):
            raise ValidationError(f"metadata must be a mapping, got {type(metadata).__name__}")
        
        stored_metadata: Dict[str, Any] = unflatten(dict(metadata or {}))
        if content_type:
            stored_metadata[CONTENT_TYPE_KEY] = content_type
        chunk_size = chunk_size or self.chunk_size
        
        bucket, generation = await self._bucket()
        written = 0
        try:
            if file_id is None:
                grid_in = bucket.open_upload_stream(
                    name, chunk_size_bytes=chunk_size, metadata=stored_metadata
                )
            else:
                grid_in = bucket.open_upload_stream_with_id(
                    file_id, name, chunk_size_bytes=chunk_size, metadata=stored_metadata
                )
            
            try:
                async for chunk in _iter_chunks(payload, chunk_size):
                    await grid_in.write(chunk)
                    written += len(chunk)
            except BaseException:
                await grid_in.abort()
                raise
            await grid_in.close()
        except DocumentStoreError:
            raise
        except Exception as e:
            raise self.connection.translate_error(
                f"gridfs write of '{name}'", e, generation
            ) from e
        
        stored_id = grid_in._id
        
        if verify:
            actual = len(await self._read_exact(stored_id))
            if actual != written:
                error = SizeMismatchError(written, actual, stored_id)
                self.logger.error(str(error))
                raise error
        
        self.logger.info(f"Inserted large object '{name}' ({written} bytes, id {stored_id})")
        return LargeObjectInfo(
            file_id=stored_id,
            name=name,
            length=written,
            chunk_size=chunk_size,
            content_type=content_type,
            metadata=stored_metadata,
        )
    
    async def write_file(
        self,
        path: Union[str, Path],
        name: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
        content_type: Optional[str] = None,
    ) -> LargeObjectInfo:
        """
        Stream a local file into the store and verify it against its size on disk.
        
        Args:
            path: File to upload
            name: Object name (defaults to the file name)
            metadata: Metadata; dotted keys are stored as nested mappings
            content_type: MIME type
        """
        path = Path(path)
        expected = os.stat(path).st_size
        
        with open(path, "rb") as f:
            info = await self.write(
                name or path.name,
                metadata=metadata,
                payload=f,
                content_type=content_type,
                verify=True,
            )
        
        if info.length != expected:
            raise SizeMismatchError(expected, info.length, info.file_id)
        return info
    
    async def read_stream(self, name: str) -> AsyncIterator[bytes]:
        """
        Open a large object by name and return its chunks as an async iterator.
        
        The iterator is finite and cannot be restarted.
        
        Raises:
            NotFoundError: If no object has this name
        """
        bucket, generation = await self._bucket()
        try:
            grid_out = await bucket.open_download_stream_by_name(name)
        except Exception as e:
            raise self.connection.translate_error(
                f"gridfs open of '{name}'", e, generation
            ) from e
        return self._chunks(grid_out, name, generation)
    
    async def _chunks(
        self, grid_out: Any, label: Any, generation: int
    ) -> AsyncIterator[bytes]:
        grid_out.seek(0)
        while True:
            try:
                chunk = await grid_out.readchunk()
            except Exception as e:
                raise self.connection.translate_error(
                    f"gridfs read of '{label}'", e, generation
                ) from e
            if not chunk:
                break
            yield chunk
    
    async def _read_all(self, chunks: AsyncIterator[bytes]) -> bytes:
        buffer: List[bytes] = []
        async for chunk in chunks:
            buffer.append(chunk)
        return b"".join(buffer)
    
    async def read(self, name: str) -> bytes:
        """
        Read a whole large object by name.
        
        Raises:
            NotFoundError: If no object has this name
            DocumentStoreError: If the stream fails midway (partial data is discarded)
        """
        data = await self._read_all(await self.read_stream(name))
        self.logger.debug(f"Read large object '{name}' ({len(data)} bytes)")
        return data
    
    async def read_by_id(self, file_id: Any) -> bytes:
        """
        Read a whole large object by id.
        
        A 24-hex string matches an object stored under that string or under
        the equivalent ObjectId.
        """
        return await self._read_exact(await self._stored_id(file_id))
    
    async def _read_exact(self, file_id: Any) -> bytes:
        bucket, generation = await self._bucket()
        try:
            grid_out = await bucket.open_download_stream(file_id)
        except Exception as e:
            raise self.connection.translate_error(
                f"gridfs open of {file_id}", e, generation
            ) from e
        return await self._read_all(self._chunks(grid_out, file_id, generation))
    
    async def _stored_id(self, file_id: Any) -> Any:
        """Map a caller-given id onto the ``_id`` the object is stored under."""
        query = id_query(file_id)
        if query is file_id:
            return file_id
        found = await self._find({"_id": query})
        # Unknown ids are passed through so the store reports them
        return found[0]["_id"] if found else file_id
    
    async def exists(self, file_id: Any) -> bool:
        """Check whether a large object with this id exists."""
        return bool(await self._find({"_id": id_query(file_id)}))
    
    async def is_listed(self, name: str) -> bool:
        """Check whether any large object has this name."""
        return bool(await self._find({"filename": name}))
    
    async def _find(self, query: Dict[str, Any]) -> List[Dict[str, Any]]:
        bucket, generation = await self._bucket()
        try:
            return await bucket.find(query, limit=1).to_list(length=1)
        except Exception as e:
            raise self.connection.translate_error("gridfs lookup", e, generation) from e
    
    async def remove(self, file_id: Any) -> None:
        """
        Delete a large object and its chunks.
        
        No existence check is made first; a missing id surfaces as the
        store reports it (NotFoundError).
        """
        file_id = await self._stored_id(file_id)
        bucket, generation = await self._bucket()
        try:
            await bucket.delete(file_id)
        except Exception as e:
            raise self.connection.translate_error(
                f"gridfs delete of {file_id}", e, generation
            ) from e
        self.logger.info(f"Removed large object {file_id}")
