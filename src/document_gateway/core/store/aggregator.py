"""
Cross-collection query aggregation.

Fans a query out over several collections, merges the results in the order
the query objects were given, truncates the merged list and tags every
surviving document with the collection that owns it.
"""

import asyncio
import logging
from typing import Any, List, Optional, Sequence

from .dispatcher import OperationDispatcher
from .probe import CollectionProbe
from .types import (
    DatabaseObjectLike,
    DispatchOptions,
    Document,
    Operation,
    ValidationError,
)

UNRESOLVED_COLLECTION = "none"


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _first_failure(outcomes: Sequence[Any]) -> Optional[BaseException]:
    for outcome in outcomes:
        if isinstance(outcome, BaseException):
            return outcome
    return None


class CrossCollectionAggregator:
    """
    All-or-nothing fan-out query over several collections.
    
    Every sub-query (and every ownership probe) runs to completion; if any
    of them failed, the first failure in input order is raised and no
    partial result is returned.
    """
    
    def __init__(self, dispatcher: OperationDispatcher, probe: CollectionProbe) -> None:
        self.dispatcher = dispatcher
        self.probe = probe
        self.logger = logging.getLogger(__name__)
    
    async def query_all(
        self,
        objects: Sequence[DatabaseObjectLike],
        limit: Optional[int] = None,
        options: Optional[DispatchOptions] = None,
    ) -> List[Document]:
        """
        Query every object's collection and merge the results.
        
        Args:
            objects: One database object per collection to query
            limit: Keep only the first ``limit`` merged documents
            options: Dispatch options applied to each sub-query
            
        Returns:
            Documents in input-object order, each with a ``collection`` key
            naming its owner (``"none"`` when unresolved)
            
        Raises:
            ValidationError: If no objects were given or ``limit`` is negative
            DocumentStoreError: The first sub-query or probe failure
        """
        if not objects:
            raise ValidationError("no result: at least one database object is required")
        if _is_count(limit) and limit < 0:
            raise ValidationError(f"limit must not be negative, got {limit}")
        
        outcomes = await asyncio.gather(
            *(self.dispatcher.dispatch(Operation.FIND, options, obj) for obj in objects),
            return_exceptions=True,
        )
        failure = _first_failure(outcomes)
        if failure is not None:
            self.logger.error(f"Aggregated query failed: {failure}")
            raise failure
        
        docs: List[Document] = [doc for result in outcomes for doc in result]
        
        if _is_count(limit):
            docs = docs[:limit]
        
        await self._attach_owners(docs)
        
        self.logger.debug(f"Aggregated {len(docs)} documents from {len(objects)} collections")
        return docs
    
    async def _attach_owners(self, docs: List[Document]) -> None:
        outcomes = await asyncio.gather(
            *(self._owner_of(doc) for doc in docs),
            return_exceptions=True,
        )
        failure = _first_failure(outcomes)
        if failure is not None:
            self.logger.error(f"Resolving result collections failed: {failure}")
            raise failure
        
        for doc, owner in zip(docs, outcomes):
            doc["collection"] = owner or UNRESOLVED_COLLECTION
    
    async def _owner_of(self, doc: Document) -> Optional[str]:
        if doc.get("_id") is None:
            return None
        return await self.probe.resolve_owner(doc["_id"], exact=True)
