# ticketing/store/memory.py
import asyncio
import copy
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

import structlog

from ticketing.exceptions import ConflictError
from ticketing.store.base import Document, DocumentStore, Transaction

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_DELETE = object()


class _Conflict(Exception):
    pass


def _matches(doc: Document, filters: Dict[str, Any]) -> bool:
    for field, expected in filters.items():
        value = doc.get(field)
        if isinstance(value, list) and not isinstance(expected, list):
            if expected not in value:
                return False
        elif value != expected:
            return False
    return True


class MemoryTransaction(Transaction):
    def __init__(self, store: "MemoryDocumentStore"):
        self._store = store
        self.reads: Dict[Tuple[str, str], int] = {}
        self.writes: Dict[Tuple[str, str], Any] = {}

    async def get(self, collection, doc_id):
        key = (collection, doc_id)
        if key in self.writes:
            pending = self.writes[key]
            return None if pending is _DELETE else copy.deepcopy(pending)
        # Yield like a network round trip so concurrent transactions interleave.
        await asyncio.sleep(0)
        version, doc = self._store._read(collection, doc_id)
        self.reads.setdefault(key, version)
        return copy.deepcopy(doc) if doc is not None else None

    def set(self, collection, doc_id, data):
        self.writes[(collection, doc_id)] = {**copy.deepcopy(data), "id": doc_id}

    def update(self, collection, doc_id, patch):
        key = (collection, doc_id)
        base = self.writes.get(key)
        if base is None:
            version, base = self._store._read(collection, doc_id)
            self.reads.setdefault(key, version)
        if base is None or base is _DELETE:
            raise KeyError(f"{collection}/{doc_id} does not exist")
        self.writes[key] = {**copy.deepcopy(base), **copy.deepcopy(patch)}

    def delete(self, collection, doc_id):
        self.writes[(collection, doc_id)] = _DELETE


class MemoryDocumentStore(DocumentStore):
    """Dict-backed store with optimistic, version-checked transactions.

    Commit validates the read set and applies the write set without awaiting,
    so on a single event loop it cannot interleave with another commit.
    """

    def __init__(self, max_attempts: int = 5):
        super().__init__(max_attempts)
        self._data: Dict[str, Dict[str, Document]] = {}
        self._versions: Dict[Tuple[str, str], int] = {}
        self.commits = 0

    def _read(self, collection: str, doc_id: str) -> Tuple[int, Optional[Document]]:
        return self._versions.get((collection, doc_id), 0), self._data.get(collection, {}).get(doc_id)

    def _write(self, collection: str, doc_id: str, data: Any) -> None:
        key = (collection, doc_id)
        self._versions[key] = self._versions.get(key, 0) + 1
        if data is _DELETE:
            self._data.get(collection, {}).pop(doc_id, None)
        else:
            self._data.setdefault(collection, {})[doc_id] = data

    async def get(self, collection, doc_id):
        _, doc = self._read(collection, doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def put(self, collection, doc_id, data, merge=False):
        _, current = self._read(collection, doc_id)
        if merge and current is not None:
            data = {**current, **data}
        self._write(collection, doc_id, {**copy.deepcopy(data), "id": doc_id})

    async def delete(self, collection, doc_id):
        self._write(collection, doc_id, _DELETE)

    async def find(self, collection, filters=None, order_by=None, limit=None):
        docs = [copy.deepcopy(d) for d in self._data.get(collection, {}).values() if _matches(d, filters or {})]
        if order_by:
            field, descending = order_by
            docs.sort(key=lambda d: (d.get(field) is not None, d.get(field)), reverse=descending)
        return docs[:limit] if limit else docs

    def _commit(self, tx: MemoryTransaction) -> None:
        for (collection, doc_id), version in tx.reads.items():
            if self._read(collection, doc_id)[0] != version:
                raise _Conflict(f"{collection}/{doc_id}")
        for (collection, doc_id), data in tx.writes.items():
            self._write(collection, doc_id, data)
        self.commits += 1

    async def transact(self, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        for attempt in range(1, self.max_attempts + 1):
            tx = MemoryTransaction(self)
            result = await fn(tx)
            try:
                self._commit(tx)
            except _Conflict as exc:
                logger.info("store_transaction_conflict", document=str(exc), attempt=attempt)
                continue
            return result
        raise ConflictError()
