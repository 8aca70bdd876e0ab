# ticketing/store/mongo.py
from typing import Any, Awaitable, Callable, List, Optional, Tuple, TypeVar

import structlog
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError
from pymongo.read_concern import ReadConcern
from pymongo.write_concern import WriteConcern

from ticketing.exceptions import ConflictError, StoreError
from ticketing.store.base import (
    ACCESS,
    AFFILIATES,
    EVENTS,
    ORDERS,
    PAYOUT_REQUESTS,
    TICKETS,
    Document,
    DocumentStore,
    Transaction,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _to_mongo(doc_id: str, data: Document) -> Document:
    return {**data, "_id": doc_id, "id": doc_id}


def _from_mongo(doc: Optional[Document]) -> Optional[Document]:
    if doc is None:
        return None
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    return doc


class MongoTransaction(Transaction):
    def __init__(self, database: AsyncIOMotorDatabase, session):
        self._db = database
        self._session = session
        self._ops: List[Tuple[str, str, str, Any]] = []

    async def get(self, collection, doc_id):
        doc = await self._db[collection].find_one({"_id": doc_id}, session=self._session)
        return _from_mongo(doc)

    def set(self, collection, doc_id, data):
        self._ops.append(("set", collection, doc_id, data))

    def update(self, collection, doc_id, patch):
        self._ops.append(("update", collection, doc_id, patch))

    def delete(self, collection, doc_id):
        self._ops.append(("delete", collection, doc_id, None))

    async def flush(self) -> None:
        for op, collection, doc_id, data in self._ops:
            coll = self._db[collection]
            if op == "set":
                await coll.replace_one({"_id": doc_id}, _to_mongo(doc_id, data), upsert=True, session=self._session)
            elif op == "update":
                await coll.update_one({"_id": doc_id}, {"$set": data}, session=self._session)
            else:
                await coll.delete_one({"_id": doc_id}, session=self._session)


class MongoDocumentStore(DocumentStore):
    """Document store on MongoDB multi-document transactions (replica set required)."""

    def __init__(self, client: AsyncIOMotorClient, database: AsyncIOMotorDatabase, max_attempts: int = 5):
        super().__init__(max_attempts)
        self.client = client
        self.database = database

    async def ensure_indexes(self) -> None:
        await self.database[ORDERS].create_index("reference", unique=True)
        await self.database[ORDERS].create_index([("sellerIds", ASCENDING), ("createdAt", DESCENDING)])
        await self.database[TICKETS].create_index([("buyerId", ASCENDING), ("issuedAt", DESCENDING)])
        await self.database[TICKETS].create_index([("sellerId", ASCENDING), ("issuedAt", DESCENDING)])
        await self.database[EVENTS].create_index("sellerId")
        await self.database[ACCESS].create_index("memberEmail")
        await self.database[PAYOUT_REQUESTS].create_index([("sellerId", ASCENDING), ("createdAt", DESCENDING)])
        await self.database[AFFILIATES].create_index("sellerId")

    async def get(self, collection, doc_id):
        try:
            return _from_mongo(await self.database[collection].find_one({"_id": doc_id}))
        except PyMongoError as exc:
            raise StoreError() from exc

    async def put(self, collection, doc_id, data, merge=False):
        coll = self.database[collection]
        try:
            if merge:
                await coll.update_one({"_id": doc_id}, {"$set": {**data, "id": doc_id}}, upsert=True)
            else:
                await coll.replace_one({"_id": doc_id}, _to_mongo(doc_id, data), upsert=True)
        except PyMongoError as exc:
            raise StoreError() from exc

    async def delete(self, collection, doc_id):
        try:
            await self.database[collection].delete_one({"_id": doc_id})
        except PyMongoError as exc:
            raise StoreError() from exc

    async def find(self, collection, filters=None, order_by=None, limit=None):
        cursor = self.database[collection].find(filters or {})
        if order_by:
            field, descending = order_by
            cursor = cursor.sort(field, DESCENDING if descending else ASCENDING)
        if limit:
            cursor = cursor.limit(limit)
        try:
            return [_from_mongo(doc) for doc in await cursor.to_list(length=limit)]
        except PyMongoError as exc:
            raise StoreError() from exc

    async def _abort(self, session) -> None:
        if not session.in_transaction:
            return
        try:
            await session.abort_transaction()
        except PyMongoError:
            # The server drops the transaction on its own once the session ends.
            logger.warning("store_transaction_abort_failed", exc_info=True)

    async def _commit(self, session) -> None:
        for _ in range(self.max_attempts):
            try:
                await session.commit_transaction()
                return
            except PyMongoError as exc:
                if not exc.has_error_label("UnknownTransactionCommitResult"):
                    raise
        await session.commit_transaction()

    async def transact(self, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        async with await self.client.start_session() as session:
            for attempt in range(1, self.max_attempts + 1):
                session.start_transaction(
                    read_concern=ReadConcern("snapshot"),
                    write_concern=WriteConcern("majority"),
                )
                tx = MongoTransaction(self.database, session)
                try:
                    result = await fn(tx)
                    await tx.flush()
                    await self._commit(session)
                except PyMongoError as exc:
                    await self._abort(session)
                    if exc.has_error_label("TransientTransactionError"):
                        logger.info("store_transaction_conflict", attempt=attempt, error=str(exc))
                        continue
                    raise StoreError() from exc
                except BaseException:
                    await self._abort(session)
                    raise
                return result
        raise ConflictError()
