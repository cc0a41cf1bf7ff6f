"""
Collection ownership probing.

Given a document id, search every collection of the database and report
which one holds it. Lookups run concurrently and the first collection that
answers with a match wins.

If the same id exists in more than one collection the reported owner is
whichever lookup completes first. That race is accepted: ids are expected
to be unique across the database.
"""

import asyncio
import logging
from typing import Any, Optional

from pymongo.errors import OperationFailure

from .connection import ConnectionManager
from .dispatcher import find_operation
from .types import DatabaseObject, ValidationError, id_query


class CollectionProbe:
    """
    Resolve the owning collection of a document id.
    """
    
    def __init__(self, connection: ConnectionManager) -> None:
        self.connection = connection
        self.logger = logging.getLogger(__name__)
    
    async def resolve_owner(self, doc_id: Any, exact: bool = False) -> Optional[str]:
        """
        Find the collection holding a document with ``_id == doc_id``.
        
        Args:
            doc_id: Document id. A 24-hex string matches both a string id
                and the ObjectId it spells, unless ``exact`` is set
            exact: Match ``doc_id`` exactly as given (for ids read back
                from the store)
            
        Returns:
            Name of the first matching collection, or None if no collection
            holds the id
            
        Raises:
            ValidationError: If no id was given
            ConnectionError: If the store cannot be reached
        """
        if doc_id is None or doc_id == "":
            raise ValidationError("id undefined")
        
        query = doc_id if exact else id_query(doc_id)
        names = await self.connection.list_collection_names()
        if not names:
            return None
        
        database = await self.connection.get_database()
        generation = self.connection.generation
        tasks = [
            asyncio.ensure_future(self._lookup(database[name], name, query, generation))
            for name in names
        ]
        
        try:
            for next_done in asyncio.as_completed(tasks):
                owner = await next_done
                if owner is not None:
                    self.logger.debug(f"Id {doc_id} resolved to collection '{owner}'")
                    return owner
            return None
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            # Collect every outcome so late failures are not reported as unretrieved
            await asyncio.gather(*tasks, return_exceptions=True)
    
    async def _lookup(self, collection: Any, name: str, query: Any, generation: int) -> Optional[str]:
        lookup = DatabaseObject(collection=name, values={"_id": query})
        try:
            docs = await find_operation(collection, lookup, {"limit": 1})
        except OperationFailure as e:
            # A collection that rejects the lookup (e.g. a view) just isn't the owner
            self.logger.warning(f"Skipping collection '{name}' while probing {query}: {e}")
            return None
        except Exception as e:
            raise self.connection.translate_error(f"probe of '{name}'", e, generation) from e
        return name if docs else None
