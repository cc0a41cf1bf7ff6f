"""Shared test fixtures and in-memory store fakes for document gateway tests."""

import asyncio
import json
import re
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from bson import ObjectId
from gridfs.errors import NoFile

from document_gateway.core.store import ConnectionManager, DocumentGateway, StoreConfig


def _matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    for key, expected in query.items():
        actual = doc.get(key)
        if isinstance(expected, re.Pattern):
            if not isinstance(actual, str) or not expected.search(actual):
                return False
        elif isinstance(expected, dict) and "$in" in expected:
            if actual not in expected["$in"]:
                return False
        elif actual != expected:
            return False
    return True


class FakeCursor:
    """Stand-in for AsyncIOMotorCursor."""
    
    def __init__(self, docs: List[Dict[str, Any]], owner: Any = None) -> None:
        self.docs = docs
        self.owner = owner
    
    async def to_list(self, length: Optional[int] = None) -> List[Dict[str, Any]]:
        if self.owner is not None:
            if self.owner.delay:
                await asyncio.sleep(self.owner.delay)
            if self.owner.error is not None:
                raise self.owner.error
        docs = [dict(doc) for doc in self.docs]
        return docs if length is None else docs[:length]


class FakeCollection:
    """Stand-in for AsyncIOMotorCollection."""
    
    def __init__(self, name: str) -> None:
        self.name = name
        self.docs: List[Dict[str, Any]] = []
        self.exists = False
        self.error: Optional[BaseException] = None
        self.delay = 0.0
        self.find_calls: List[Dict[str, Any]] = []
        self.write_concern: Any = None
    
    def seed(self, *docs: Dict[str, Any]) -> "FakeCollection":
        for doc in docs:
            self.docs.append(dict(doc))
        self.exists = True
        return self
    
    def with_options(self, write_concern: Any = None) -> "FakeCollection":
        self.write_concern = write_concern
        return self
    
    def find(self, query: Dict[str, Any], limit: int = 0) -> FakeCursor:
        self.find_calls.append({"query": dict(query), "limit": limit})
        docs = [doc for doc in self.docs if _matches(doc, query)]
        if limit:
            docs = docs[:limit]
        return FakeCursor(docs, owner=self)
    
    async def insert_one(self, doc: Dict[str, Any]) -> Any:
        if self.error is not None:
            raise self.error
        doc.setdefault("_id", ObjectId())
        self.seed(doc)
        return SimpleNamespace(inserted_id=doc["_id"], acknowledged=True)
    
    async def update_one(self, query: Dict[str, Any], update: Dict[str, Any], upsert: bool = False) -> Any:
        if self.error is not None:
            raise self.error
        for doc in self.docs:
            if _matches(doc, query):
                doc.update(update.get("$set", {}))
                return SimpleNamespace(matched_count=1, modified_count=1, upserted_id=None)
        if not upsert:
            return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)
        new_doc = dict(query)
        new_doc.update(update.get("$set", {}))
        new_doc.setdefault("_id", ObjectId())
        self.seed(new_doc)
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=new_doc["_id"])


class FakeDatabase:
    """Stand-in for AsyncIOMotorDatabase, including GridFS storage."""
    
    def __init__(self, name: str = "testdb") -> None:
        self.name = name
        self.collections: Dict[str, FakeCollection] = {}
        self.ping_error: Optional[BaseException] = None
        self.list_error: Optional[BaseException] = None
        self.commands: List[str] = []
        # GridFS state shared by every bucket built on this database
        self.files: Dict[Any, Dict[str, Any]] = {}
        self.drop_bytes = 0
        self.read_error_after: Optional[int] = None
    
    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]
    
    async def command(self, name: str) -> Dict[str, Any]:
        self.commands.append(name)
        if self.ping_error is not None:
            raise self.ping_error
        return {"ok": 1.0}
    
    async def list_collection_names(self) -> List[str]:
        if self.list_error is not None:
            raise self.list_error
        return [name for name, coll in self.collections.items() if coll.exists]


class FakeClient:
    """Stand-in for AsyncIOMotorClient."""
    
    def __init__(self, database: FakeDatabase, url: str, **kwargs: Any) -> None:
        self.database = database
        self.url = url
        self.kwargs = kwargs
        self.closed = False
    
    def __getitem__(self, name: str) -> FakeDatabase:
        return self.database
    
    def close(self) -> None:
        self.closed = True


class FakeClientFactory:
    """Callable replacing the AsyncIOMotorClient constructor; records every client built."""
    
    def __init__(self, database: FakeDatabase) -> None:
        self.database = database
        self.clients: List[FakeClient] = []
    
    def __call__(self, url: str, **kwargs: Any) -> FakeClient:
        client = FakeClient(self.database, url, **kwargs)
        self.clients.append(client)
        return client


class FakeGridIn:
    def __init__(self, database: FakeDatabase, file_id: Any, filename: str, chunk_size: int, metadata: Any) -> None:
        self.database = database
        self._id = file_id
        self.filename = filename
        self.chunk_size = chunk_size
        self.metadata = metadata
        self.buffer = bytearray()
        self.aborted = False
    
    async def write(self, data: bytes) -> None:
        self.buffer.extend(data)
    
    async def close(self) -> None:
        data = bytes(self.buffer)
        if self.database.drop_bytes:
            data = data[:-self.database.drop_bytes]
        self.database.files[self._id] = {
            "_id": self._id,
            "filename": self.filename,
            "chunkSize": self.chunk_size,
            "metadata": self.metadata,
            "data": data,
        }
    
    async def abort(self) -> None:
        self.aborted = True


class FakeGridOut:
    def __init__(self, database: FakeDatabase, record: Dict[str, Any]) -> None:
        self.database = database
        self.record = record
        self.length = len(record["data"])
        self.position = 0
        self.chunks_read = 0
    
    def seek(self, pos: int) -> None:
        self.position = pos
    
    async def readchunk(self) -> bytes:
        limit = self.database.read_error_after
        if limit is not None and self.chunks_read >= limit:
            raise IOError("stream interrupted")
        data = self.record["data"]
        chunk = data[self.position:self.position + self.record["chunkSize"]]
        self.position += len(chunk)
        self.chunks_read += 1
        return chunk


class FakeGridFSBucket:
    """Stand-in for AsyncIOMotorGridFSBucket."""
    
    def __init__(self, database: FakeDatabase, bucket_name: str = "fs") -> None:
        self.database = database
        self.bucket_name = bucket_name
    
    def open_upload_stream(self, filename: str, chunk_size_bytes: Optional[int] = None, metadata: Any = None) -> FakeGridIn:
        return self.open_upload_stream_with_id(ObjectId(), filename, chunk_size_bytes, metadata)
    
    def open_upload_stream_with_id(
        self, file_id: Any, filename: str, chunk_size_bytes: Optional[int] = None, metadata: Any = None
    ) -> FakeGridIn:
        return FakeGridIn(self.database, file_id, filename, chunk_size_bytes or 261120, metadata)
    
    async def open_download_stream(self, file_id: Any) -> FakeGridOut:
        if file_id not in self.database.files:
            raise NoFile(f"no file in gridfs collection with _id {file_id!r}")
        return FakeGridOut(self.database, self.database.files[file_id])
    
    async def open_download_stream_by_name(self, filename: str) -> FakeGridOut:
        matches = [r for r in self.database.files.values() if r["filename"] == filename]
        if not matches:
            raise NoFile(f"no version -1 for filename {filename!r}")
        return FakeGridOut(self.database, matches[-1])
    
    def find(self, query: Dict[str, Any], limit: int = 0) -> FakeCursor:
        docs = [
            {k: v for k, v in record.items() if k != "data"}
            for record in self.database.files.values()
            if _matches(record, query)
        ]
        if limit:
            docs = docs[:limit]
        return FakeCursor(docs)
    
    async def delete(self, file_id: Any) -> None:
        if file_id not in self.database.files:
            raise NoFile(f"File id {file_id!r} not found")
        del self.database.files[file_id]


@pytest.fixture
def fake_db():
    """Provide an empty in-memory database."""
    return FakeDatabase("testdb")


@pytest.fixture
def client_factory(fake_db):
    """Provide a client factory bound to the in-memory database."""
    return FakeClientFactory(fake_db)


@pytest.fixture
def store_config():
    """Provide store connection settings for tests."""
    return StoreConfig(server_url="localhost", db_name="testdb")


@pytest.fixture
def connection(store_config, client_factory):
    """Provide a connection manager over the in-memory database."""
    return ConnectionManager(store_config, client_factory=client_factory)


@pytest.fixture
def gateway(store_config, client_factory):
    """Provide a gateway wired to in-memory fakes."""
    return DocumentGateway(
        store_config=store_config,
        client_factory=client_factory,
        bucket_factory=FakeGridFSBucket,
    )


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    """Provide a project root holding a valid config.json, with store env vars cleared."""
    for var in ("DOCSTORE_SERVER_URL", "DOCSTORE_PORT", "DOCSTORE_DB_NAME",
                "DOCSTORE_LOG_LEVEL", "DOCSTORE_LOG_FORMAT"):
        monkeypatch.delenv(var, raising=False)
    
    config = {
        "serverURL": "db.example.com",
        "dbName": "inventory",
        "collections": {"users": {}},
        "logging": {"level": "INFO", "format": "standard"},
    }
    (tmp_path / "config.json").write_text(json.dumps(config))
    return tmp_path


@pytest.fixture
def large_objects(connection):
    """Provide a large-object store on the in-memory GridFS bucket."""
    from document_gateway.core.store import LargeObjectStore
    return LargeObjectStore(connection, chunk_size=4, bucket_factory=FakeGridFSBucket)
