"""
Generic CRUD dispatch for the document store.

This module validates a database object, normalizes its regex markers,
resolves the target collection through the ConnectionManager and runs one
of the registered operations against it.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from pymongo import WriteConcern

from ...models.schemas import DATABASE_OBJECT_SCHEMA, DISPATCH_OPTIONS_SCHEMA
from ...utils.config.schema_validation import SchemaValidator
from .connection import ConnectionManager
from .regex import normalize_regex
from .types import (
    DatabaseObject,
    DatabaseObjectLike,
    DispatchOptions,
    Document,
    Operation,
    OperationFn,
    ValidationError,
)


logger = logging.getLogger(__name__)


def _apply_write_concern(collection: Any, options: DispatchOptions) -> Any:
    if "writeConcern" not in options:
        return collection
    return collection.with_options(write_concern=WriteConcern(w=options["writeConcern"]))


async def insert_operation(collection: Any, db_object: DatabaseObject, options: DispatchOptions) -> Any:
    """Insert ``values`` as one document."""
    collection = _apply_write_concern(collection, options)
    return await collection.insert_one(db_object.values)


async def find_operation(collection: Any, db_object: DatabaseObject, options: DispatchOptions) -> List[Document]:
    """Find documents matching ``values``; ``limit`` bounds the cursor."""
    cursor = collection.find(db_object.values, limit=options.get("limit", 0))
    return await cursor.to_list(length=None)


async def update_one_operation(collection: Any, db_object: DatabaseObject, options: DispatchOptions) -> Any:
    """
    Update the first document matching ``values`` with ``update``.
    
    A plain mapping without update operators is applied as ``$set``.
    """
    update = db_object.update
    if not update:
        raise ValidationError("updateOne requires a non-empty update document")
    if not any(key.startswith("$") for key in update):
        update = {"$set": update}
    
    collection = _apply_write_concern(collection, options)
    return await collection.update_one(
        db_object.values,
        update,
        upsert=bool(options.get("upsert", False)),
    )


DEFAULT_OPERATIONS: Dict[Operation, OperationFn] = {
    Operation.INSERT: insert_operation,
    Operation.FIND: find_operation,
    Operation.UPDATE_ONE: update_one_operation,
}


class OperationDispatcher:
    """
    Validate-normalize-execute pipeline for CRUD calls.
    
    Validation failures raise ``ValidationError`` before any store call.
    Regex normalization mutates the caller's ``values`` in place.
    """
    
    def __init__(
        self,
        connection: ConnectionManager,
        validator: Optional[SchemaValidator] = None,
    ) -> None:
        """
        Initialize the dispatcher.
        
        Args:
            connection: Shared connection manager
            validator: Schema validator (creates one if None)
        """
        self.connection = connection
        self.validator = validator or SchemaValidator()
        self.logger = logger
        self.operations: Dict[Operation, OperationFn] = dict(DEFAULT_OPERATIONS)
    
    def register_operation(self, tag: Operation, fn: OperationFn) -> None:
        """Register (or replace) the callable run for an operation tag."""
        self.operations[tag] = fn
    
    def validate(self, db_object: DatabaseObjectLike, options: Optional[DispatchOptions] = None) -> DatabaseObject:
        """
        Validate a database object and dispatch options.
        
        Returns:
            The object as a DatabaseObject sharing the caller's ``values``
            
        Raises:
            ValidationError: If either payload is invalid
        """
        payload = db_object.to_dict() if isinstance(db_object, DatabaseObject) else db_object
        self.validator.validate_or_raise(payload, DATABASE_OBJECT_SCHEMA, ValidationError)
        self.validator.validate_or_raise(options or {}, DISPATCH_OPTIONS_SCHEMA, ValidationError)
        return DatabaseObject.coerce(db_object)
    
    async def dispatch(
        self,
        operation: Operation,
        options: Optional[DispatchOptions],
        db_object: DatabaseObjectLike,
    ) -> Any:
        """
        Run one operation against the object's collection.
        
        Args:
            operation: Operation tag
            options: Dispatch options (``limit``, ``upsert``, ``writeConcern``)
            db_object: Target collection and values
            
        Returns:
            The operation's raw result
            
        Raises:
            ValidationError: If the object, the options or a regex marker is invalid
            ConnectionError: If the store is unreachable (the shared handle is closed)
            OperationError: If the store rejects the call
        """
        try:
            operation = Operation(operation)
        except ValueError:
            raise ValidationError(f"unknown operation '{operation}'") from None
        if operation not in self.operations:
            raise ValidationError(f"no callable registered for '{operation.value}'")
        
        options = dict(options or {})
        obj = self.validate(db_object, options)
        normalize_regex(obj.values)
        
        self.logger.debug(
            f"Doing {operation.value}: db.{obj.collection}.{operation.value}"
            f"({json.dumps(obj.values, default=str)}) options={options}"
        )
        
        collection = await self.connection.get_collection(obj.collection)
        generation = self.connection.generation
        try:
            return await self.operations[operation](collection, obj, options)
        except ValidationError:
            raise
        except Exception as e:
            raise self.connection.translate_error(
                f"{operation.value} on '{obj.collection}'", e, generation
            ) from e
