# assetverse/db/stores.py
"""
Store contracts used by the lifecycle engine, and their MongoDB implementation.

Records are plain dicts whose identifier is exposed as the string field ``id``.
Filters use the MongoDB query subset: equality, ``$in``, ``$ne``, ``$gt``, ``$gte``,
``$lt``, ``$lte`` and ``$regex``/``$options``; the key ``id`` addresses the record
identifier. Updates passed to ``find_and_modify`` use ``$set`` and ``$inc``.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Type, TypeVar

from beanie import Document
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from assetverse.core.errors import DuplicateRecordError, StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")
Record = Dict[str, Any]
SortSpec = Sequence[Tuple[str, int]]


class Store(ABC):
    """Access contract for one collection of records."""

    @abstractmethod
    async def insert(self, record: Record, session=None) -> str: ...

    @abstractmethod
    async def find_by_id(self, record_id: str, session=None) -> Optional[Record]: ...

    @abstractmethod
    async def find_one(self, filter: Record, session=None) -> Optional[Record]: ...

    @abstractmethod
    async def find_many(
        self,
        filter: Optional[Record] = None,
        sort: Optional[SortSpec] = None,
        skip: int = 0,
        limit: int = 0,
        session=None,
    ) -> List[Record]: ...

    @abstractmethod
    async def update_by_id(self, record_id: str, patch: Record, session=None) -> int: ...

    @abstractmethod
    async def update_many(self, filter: Record, patch: Record, session=None) -> int: ...

    @abstractmethod
    async def delete_by_id(self, record_id: str, session=None) -> int: ...

    @abstractmethod
    async def delete_many(self, filter: Record, session=None) -> int: ...

    @abstractmethod
    async def find_and_modify(
        self, record_id: str, condition: Record, update: Record, session=None
    ) -> Optional[Record]:
        """Atomically apply ``update`` if the record matches ``condition``; return it post-update or None."""


class Transactor(ABC):
    """Runs a unit of work against several stores all-or-nothing."""

    @abstractmethod
    async def run(self, work: Callable[[Any], Awaitable[T]]) -> T: ...


# --- MongoDB implementation ---

def to_object_id(record_id: Any) -> Optional[ObjectId]:
    if isinstance(record_id, ObjectId):
        return record_id
    if isinstance(record_id, str) and ObjectId.is_valid(record_id):
        return ObjectId(record_id)
    return None


class _NoMatch(Exception):
    """Filter can never match (e.g. malformed id)."""


def _translate_filter(filter: Optional[Record]) -> Record:
    query = dict(filter or {})
    if "id" not in query:
        return query
    value = query.pop("id")
    if isinstance(value, dict) and "$in" in value:
        ids = [oid for oid in (to_object_id(v) for v in value["$in"]) if oid is not None]
        query["_id"] = {"$in": ids}
    else:
        oid = to_object_id(value)
        if oid is None:
            raise _NoMatch()
        query["_id"] = oid
    return query


def _from_mongo(doc: Optional[Record]) -> Optional[Record]:
    if doc is None:
        return None
    record = dict(doc)
    record["id"] = str(record.pop("_id"))
    return record


class MongoStore(Store):
    """Store backed by the Motor collection a Beanie document model is bound to."""

    def __init__(self, document_model: Type[Document]):
        self.document_model = document_model

    @property
    def collection(self):
        return self.document_model.get_motor_collection()

    async def insert(self, record: Record, session=None) -> str:
        payload = {k: v for k, v in record.items() if k != "id"}
        try:
            result = await self.collection.insert_one(payload, session=session)
        except DuplicateKeyError as e:
            logger.warning(f"Duplicate key inserting into '{self.collection.name}': {e}")
            raise DuplicateRecordError() from e
        return str(result.inserted_id)

    async def find_by_id(self, record_id: str, session=None) -> Optional[Record]:
        oid = to_object_id(record_id)
        if oid is None:
            return None
        return _from_mongo(await self.collection.find_one({"_id": oid}, session=session))

    async def find_one(self, filter: Record, session=None) -> Optional[Record]:
        try:
            query = _translate_filter(filter)
        except _NoMatch:
            return None
        return _from_mongo(await self.collection.find_one(query, session=session))

    async def find_many(self, filter=None, sort=None, skip=0, limit=0, session=None) -> List[Record]:
        try:
            query = _translate_filter(filter)
        except _NoMatch:
            return []
        cursor = self.collection.find(query, session=session)
        if sort:
            cursor = cursor.sort(list(sort))
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return [_from_mongo(doc) for doc in await cursor.to_list(length=None)]

    async def update_by_id(self, record_id: str, patch: Record, session=None) -> int:
        oid = to_object_id(record_id)
        if oid is None:
            return 0
        result = await self.collection.update_one({"_id": oid}, {"$set": patch}, session=session)
        return result.matched_count

    async def update_many(self, filter: Record, patch: Record, session=None) -> int:
        try:
            query = _translate_filter(filter)
        except _NoMatch:
            return 0
        result = await self.collection.update_many(query, {"$set": patch}, session=session)
        return result.matched_count

    async def delete_by_id(self, record_id: str, session=None) -> int:
        oid = to_object_id(record_id)
        if oid is None:
            return 0
        result = await self.collection.delete_one({"_id": oid}, session=session)
        return result.deleted_count

    async def delete_many(self, filter: Record, session=None) -> int:
        try:
            query = _translate_filter(filter)
        except _NoMatch:
            return 0
        result = await self.collection.delete_many(query, session=session)
        return result.deleted_count

    async def find_and_modify(self, record_id: str, condition: Record, update: Record, session=None) -> Optional[Record]:
        oid = to_object_id(record_id)
        if oid is None:
            return None
        doc = await self.collection.find_one_and_update(
            {"_id": oid, **condition},
            update,
            return_document=ReturnDocument.AFTER,
            session=session,
        )
        return _from_mongo(doc)


class MongoTransactor(Transactor):
    """Runs work inside a MongoDB transaction, retrying transient transaction errors."""

    def __init__(self, client, max_attempts: int = 3):
        self.client = client
        self.max_attempts = max_attempts

    async def run(self, work: Callable[[Any], Awaitable[T]]) -> T:
        attempt = 0
        while True:
            attempt += 1
            try:
                async with await self.client.start_session() as session:
                    async with session.start_transaction():
                        return await work(session)
            except PyMongoError as e:
                if e.has_error_label("TransientTransactionError") and attempt < self.max_attempts:
                    logger.warning(f"Transient transaction error (attempt {attempt}/{self.max_attempts}), retrying: {e}")
                    continue
                logger.error(f"Transaction failed after {attempt} attempt(s): {e}", exc_info=True)
                raise StoreError() from e
