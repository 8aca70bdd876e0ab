# tests/test_mongo_store.py
from typing import Any, Dict, List, Optional

import pytest
from pymongo.errors import PyMongoError

from ticketing.exceptions import ConflictError, StoreError, TicketNotFound
from ticketing.store.mongo import MongoDocumentStore


def labelled(label: str) -> PyMongoError:
    return PyMongoError(f"{label} raised by server", error_labels=[label])


class FakeCollection:
    def __init__(self):
        self.docs: Dict[str, Dict[str, Any]] = {}
        self.fail_with: Optional[Exception] = None

    async def find_one(self, query, session=None):
        if self.fail_with:
            raise self.fail_with
        doc = self.docs.get(query["_id"])
        return dict(doc) if doc else None

    async def replace_one(self, query, doc, upsert=False, session=None):
        self.docs[query["_id"]] = dict(doc)

    async def update_one(self, query, update, upsert=False, session=None):
        current = self.docs.get(query["_id"])
        if current is None and not upsert:
            return
        self.docs[query["_id"]] = {**(current or {"_id": query["_id"]}), **update["$set"]}

    async def delete_one(self, query, session=None):
        self.docs.pop(query["_id"], None)


class FakeDatabase:
    def __init__(self):
        self.collections: Dict[str, FakeCollection] = {}

    def __getitem__(self, name):
        return self.collections.setdefault(name, FakeCollection())


class FakeSession:
    def __init__(self, commit_errors: List[Exception] = ()):
        self.commit_errors = list(commit_errors)
        self.in_transaction = False
        self.started = 0
        self.commits = 0
        self.aborts = 0

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    def start_transaction(self, read_concern=None, write_concern=None):
        self.in_transaction = True
        self.started += 1

    async def commit_transaction(self):
        if self.commit_errors:
            raise self.commit_errors.pop(0)
        self.in_transaction = False
        self.commits += 1

    async def abort_transaction(self):
        self.in_transaction = False
        self.aborts += 1


class FakeClient:
    def __init__(self, session: FakeSession):
        self.session = session

    async def start_session(self):
        return self.session


def make_store(session: Optional[FakeSession] = None, max_attempts: int = 5):
    session = session or FakeSession()
    database = FakeDatabase()
    return MongoDocumentStore(FakeClient(session), database, max_attempts=max_attempts), session, database


async def test_transaction_writes_on_commit():
    store, session, database = make_store()
    await store.put("tickets", "tk_1", {"status": "unused"})
    await store.put("tickets", "tk_2", {"status": "unused"})

    async def fn(tx):
        ticket = await tx.get("tickets", "tk_1")
        tx.update("tickets", "tk_1", {"status": "checked_in"})
        tx.set("scans", "sc_1", {"ticketId": ticket["id"]})
        tx.delete("tickets", "tk_2")
        return ticket["status"]

    assert await store.transact(fn) == "unused"
    assert session.commits == 1
    assert await store.get("tickets", "tk_1") == {"id": "tk_1", "status": "checked_in"}
    assert await store.get("tickets", "tk_2") is None
    assert database["scans"].docs["sc_1"] == {"_id": "sc_1", "id": "sc_1", "ticketId": "tk_1"}


async def test_transient_error_reruns_transaction():
    store, session, database = make_store()
    calls = []

    async def fn(tx):
        calls.append(await tx.get("orders", "ord_1"))
        if len(calls) == 1:
            raise labelled("TransientTransactionError")
        tx.set("orders", "ord_1", {"status": "paid"})
        return "paid"

    assert await store.transact(fn) == "paid"
    assert len(calls) == 2
    assert session.started == 2
    assert session.aborts == 1
    assert database["orders"].docs["ord_1"]["status"] == "paid"


async def test_gives_up_after_max_attempts():
    store, session, _ = make_store(max_attempts=3)
    calls = []

    async def fn(tx):
        calls.append(1)
        raise labelled("TransientTransactionError")

    with pytest.raises(ConflictError):
        await store.transact(fn)
    assert len(calls) == 3
    assert session.aborts == 3
    assert session.commits == 0


async def test_unknown_commit_result_retries_commit_only():
    session = FakeSession(commit_errors=[labelled("UnknownTransactionCommitResult")] * 2)
    store, _, database = make_store(session)
    calls = []

    async def fn(tx):
        calls.append(1)
        tx.set("orders", "ord_1", {"status": "paid"})

    await store.transact(fn)
    assert len(calls) == 1
    assert session.commits == 1
    assert session.aborts == 0
    assert "ord_1" in database["orders"].docs


async def test_other_driver_errors_become_store_errors():
    store, session, _ = make_store(FakeSession(commit_errors=[PyMongoError("not primary")]))

    async def fn(tx):
        tx.set("orders", "ord_1", {"status": "paid"})

    with pytest.raises(StoreError) as exc_info:
        await store.transact(fn)
    assert not isinstance(exc_info.value, ConflictError)
    assert session.aborts == 1


async def test_domain_error_aborts_without_writing():
    store, session, database = make_store()

    async def fn(tx):
        tx.set("tickets", "tk_1", {"status": "unused"})
        raise TicketNotFound()

    with pytest.raises(TicketNotFound):
        await store.transact(fn)
    assert session.aborts == 1
    assert session.commits == 0
    assert database["tickets"].docs == {}


async def test_plain_reads_and_merges():
    store, _, database = make_store()
    await store.put("payoutSettings", "seller_1", {"bankName": "Access Bank", "accountNumber": "0011223344"})
    await store.put("payoutSettings", "seller_1", {"accountName": "Org Ltd"}, merge=True)

    assert await store.get("payoutSettings", "seller_1") == {
        "id": "seller_1",
        "bankName": "Access Bank",
        "accountNumber": "0011223344",
        "accountName": "Org Ltd",
    }

    database["orders"].fail_with = PyMongoError("connection reset")
    with pytest.raises(StoreError):
        await store.get("orders", "ord_1")
