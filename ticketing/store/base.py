# ticketing/store/base.py
import uuid
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

T = TypeVar("T")

Document = Dict[str, Any]

# Firestore-style collection names; the field names inside documents are the wire contract.
ORDERS = "orders"
TICKETS = "tickets"
EVENTS = "events"
SCANS = "scans"
ACCESS = "access"
ACCESS_INDEX = "accessIndex"
PAYOUT_SETTINGS = "payoutSettings"
PAYOUT_REQUESTS = "payoutRequests"
PROFILES = "profiles"
AFFILIATES = "affiliates"


def new_id() -> str:
    return uuid.uuid4().hex


class Transaction(ABC):
    """Reads go to the backend; writes are buffered until the transaction commits.

    A transaction function must read every document it intends to guard
    before writing, the way Firestore transactions require reads first.
    """

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        ...

    @abstractmethod
    def set(self, collection: str, doc_id: str, data: Document) -> None:
        ...

    @abstractmethod
    def update(self, collection: str, doc_id: str, patch: Document) -> None:
        ...

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        ...


class DocumentStore(ABC):
    """Narrow interface over a transactional document database."""

    def __init__(self, max_attempts: int = 5):
        self.max_attempts = max_attempts

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        ...

    @abstractmethod
    async def put(self, collection: str, doc_id: str, data: Document, merge: bool = False) -> None:
        ...

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        ...

    @abstractmethod
    async def find(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[Tuple[str, bool]] = None,
        limit: Optional[int] = None,
    ) -> List[Document]:
        """Equality query. ``order_by`` is ``(field, descending)``.

        A filter on a list-valued field matches when the list contains the value.
        """

    @abstractmethod
    async def transact(self, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        """Run ``fn`` atomically.

        ``fn`` is re-run from a fresh read whenever the commit collides with a
        concurrent write, up to ``max_attempts`` times, after which
        ``ConflictError`` is raised. ``fn`` must therefore be free of side
        effects outside the transaction.
        """
