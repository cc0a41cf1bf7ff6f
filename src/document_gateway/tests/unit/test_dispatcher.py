"""Tests for validated CRUD dispatch."""

import asyncio
import re

import pytest
from pymongo.errors import AutoReconnect, OperationFailure

from document_gateway.core.store import (
    ConnectionError,
    DatabaseObject,
    Operation,
    OperationDispatcher,
    OperationError,
    ValidationError,
)


@pytest.fixture
def dispatcher(connection):
    return OperationDispatcher(connection)


class TestDispatchValidation:
    """Invalid input must fail before any store call."""
    
    @pytest.mark.asyncio
    @pytest.mark.parametrize("db_object", [
        {"values": {"name": "ada"}},
        {"collection": "", "values": {}},
        {"collection": "bad$name", "values": {}},
        {"collection": "users", "values": ["not", "a", "mapping"]},
    ])
    async def test_invalid_object(self, dispatcher, client_factory, db_object):
        with pytest.raises(ValidationError):
            await dispatcher.dispatch(Operation.FIND, None, db_object)
        
        assert client_factory.clients == []
    
    @pytest.mark.asyncio
    async def test_invalid_options(self, dispatcher, client_factory):
        with pytest.raises(ValidationError, match="DispatchOptions"):
            await dispatcher.dispatch(Operation.FIND, {"limit": -1}, {"collection": "users"})
        
        assert client_factory.clients == []
    
    @pytest.mark.asyncio
    async def test_invalid_regex(self, dispatcher, client_factory):
        with pytest.raises(ValidationError):
            await dispatcher.dispatch(
                Operation.FIND, None, {"collection": "users", "values": {"name": {"$regex": ["a", "z"]}}}
            )
        
        assert client_factory.clients == []
    
    @pytest.mark.asyncio
    async def test_unknown_operation(self, dispatcher):
        with pytest.raises(ValidationError, match="unknown operation 'delete'"):
            await dispatcher.dispatch("delete", None, {"collection": "users"})


class TestOperations:
    
    @pytest.mark.asyncio
    async def test_insert(self, dispatcher, fake_db):
        result = await dispatcher.dispatch(
            Operation.INSERT, {"writeConcern": 1}, {"collection": "users", "values": {"name": "ada"}}
        )
        
        stored = fake_db["users"].docs
        assert len(stored) == 1
        assert stored[0]["name"] == "ada"
        assert stored[0]["_id"] == result.inserted_id
        assert fake_db["users"].write_concern.document == {"w": 1}
    
    @pytest.mark.asyncio
    async def test_find_with_regex_marker(self, dispatcher, fake_db):
        fake_db["users"].seed({"_id": 1, "name": "Ada"}, {"_id": 2, "name": "Grace"}, {"_id": 3, "name": "adam"})
        values = {"name": {"$regex": ["^ada", "i"]}}
        
        docs = await dispatcher.dispatch(Operation.FIND, None, {"collection": "users", "values": values})
        
        assert [doc["_id"] for doc in docs] == [1, 3]
        # The caller's mapping is normalized in place
        assert isinstance(values["name"], re.Pattern)
    
    @pytest.mark.asyncio
    async def test_find_limit_and_string_tag(self, dispatcher, fake_db):
        fake_db["users"].seed({"_id": 1}, {"_id": 2})
        
        docs = await dispatcher.dispatch("find", {"limit": 1}, DatabaseObject("users"))
        
        assert len(docs) == 1
        assert fake_db["users"].find_calls[-1]["limit"] == 1
    
    @pytest.mark.asyncio
    async def test_update_one_wraps_plain_update(self, dispatcher, fake_db):
        fake_db["users"].seed({"_id": 1, "name": "ada", "age": 36})
        
        result = await dispatcher.dispatch(
            Operation.UPDATE_ONE,
            None,
            {"collection": "users", "values": {"name": "ada"}, "update": {"age": 37}},
        )
        
        assert result.matched_count == 1
        assert fake_db["users"].docs[0]["age"] == 37
    
    @pytest.mark.asyncio
    async def test_update_one_upsert(self, dispatcher, fake_db):
        result = await dispatcher.dispatch(
            Operation.UPDATE_ONE,
            {"upsert": True},
            {"collection": "users", "values": {"name": "grace"}, "update": {"$set": {"age": 85}}},
        )
        
        assert result.upserted_id is not None
        assert fake_db["users"].docs[0]["name"] == "grace"
        assert fake_db["users"].docs[0]["age"] == 85
    
    @pytest.mark.asyncio
    async def test_update_one_requires_update(self, dispatcher):
        with pytest.raises(ValidationError, match="non-empty update"):
            await dispatcher.dispatch(Operation.UPDATE_ONE, None, {"collection": "users", "values": {}})
    
    @pytest.mark.asyncio
    async def test_registered_operation(self, dispatcher):
        calls = []
        
        async def count_operation(collection, db_object, options):
            calls.append((collection.name, db_object.values, options))
            return 42
        
        dispatcher.register_operation(Operation.FIND, count_operation)
        
        assert await dispatcher.dispatch(Operation.FIND, {"limit": 2}, {"collection": "users"}) == 42
        assert calls == [("users", {}, {"limit": 2})]


class TestStoreErrors:
    
    @pytest.mark.asyncio
    async def test_rejected_query(self, dispatcher, connection, fake_db):
        fake_db["users"].error = OperationFailure("unknown operator: $nope")
        
        with pytest.raises(OperationError, match="find on 'users'"):
            await dispatcher.dispatch(Operation.FIND, None, {"collection": "users"})
        
        assert connection.is_connected
    
    @pytest.mark.asyncio
    async def test_lost_connection_closes_handle(self, dispatcher, connection, client_factory, fake_db):
        fake_db["users"].error = AutoReconnect("connection reset")
        
        with pytest.raises(ConnectionError):
            await dispatcher.dispatch(Operation.INSERT, None, {"collection": "users", "values": {"a": 1}})
        
        assert not connection.is_connected
        assert client_factory.clients[0].closed
    
    @pytest.mark.asyncio
    async def test_late_failure_after_reconnect_keeps_new_handle(self, dispatcher, connection, client_factory, fake_db):
        fake_db["users"].seed({"_id": 1})
        fake_db["users"].delay = 0.05
        fake_db["users"].error = AutoReconnect("connection reset")
        
        pending = asyncio.ensure_future(dispatcher.dispatch(Operation.FIND, None, {"collection": "users"}))
        await asyncio.sleep(0.01)
        connection.invalidate("server restarted")
        await connection.get_database()
        
        with pytest.raises(ConnectionError):
            await pending
        
        assert len(client_factory.clients) == 2
        assert not client_factory.clients[1].closed
        assert connection.is_connected
