# tests/conftest.py
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from ticketing.dependencies import get_gateway, get_store
from ticketing.main import app
from ticketing.models.event import Event, EventCreate, TicketTypeCreate
from ticketing.models.order import PENDING, LineItem, Order
from ticketing.services.events import create_event
from ticketing.services.intake import order_id_for
from ticketing.services.paystack import PaystackGateway, VerifyResult
from ticketing.store.base import ORDERS
from ticketing.store.memory import MemoryDocumentStore
from ticketing.utils.auth_utils import create_access_token

PAYSTACK_SECRET = "sk_test_4f9a1c"
SELLER_ID = "seller_1"


class FakePaystackGateway(PaystackGateway):
    """Records sessions and answers verify from a table; signatures are checked for real."""

    def __init__(self):
        super().__init__(secret_key=PAYSTACK_SECRET)
        self.sessions: List[Dict[str, Any]] = []
        self.payments: Dict[str, VerifyResult] = {}

    async def init_session(self, total_minor, currency, buyer_email, reference, callback_url, metadata=None):
        self.sessions.append(
            {
                "amount": total_minor,
                "currency": currency,
                "email": buyer_email,
                "reference": reference,
                "callback_url": callback_url,
                "metadata": metadata or {},
            }
        )
        return f"https://checkout.paystack.com/{reference}"

    async def verify(self, reference):
        return self.payments.get(reference, VerifyResult(paid=False, data={"status": "abandoned"}))

    def mark_paid(self, reference: str, **data):
        self.payments[reference] = VerifyResult(paid=True, data={"status": "success", "reference": reference, **data})


@pytest.fixture
def store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
def gateway() -> FakePaystackGateway:
    return FakePaystackGateway()


@pytest_asyncio.fixture
async def event(store: MemoryDocumentStore) -> Event:
    return await create_event(
        store,
        SELLER_ID,
        EventCreate(
            title="Afro Nation Lagos",
            start_at=datetime(2026, 12, 27, 18, 0, tzinfo=timezone.utc),
            venue="Eko Atlantic",
            city="Lagos",
            category="music",
            status="published",
            currency="NGN",
            ticket_types=[
                TicketTypeCreate(name="Regular", price_minor=200000, quantity_total=100),
                TicketTypeCreate(name="VIP", price_minor=500000, quantity_total=10, max_per_order=4),
            ],
        ),
    )


@pytest.fixture
def regular(event: Event):
    return event.ticket_types[0]


@pytest.fixture
def vip(event: Event):
    return event.ticket_types[1]


@pytest.fixture
def line_item(event: Event):
    def make(ticket_type, quantity: int = 1, **overrides) -> LineItem:
        fields = dict(
            event_id=event.id,
            ticket_type_id=ticket_type.id,
            name=ticket_type.name,
            unit_price_minor=ticket_type.price_minor,
            quantity=quantity,
            currency=ticket_type.currency,
        )
        fields.update(overrides)
        return LineItem(**fields)

    return make


@pytest.fixture
def pending_order(store: MemoryDocumentStore):
    """Write a pending order straight into the store, bypassing intake."""

    async def make(
        reference: str,
        items: List[LineItem],
        buyer_id: Optional[str] = "buyer_1",
        order_id: Optional[str] = None,
    ) -> Order:
        order = Order(
            id=order_id or order_id_for(reference),
            reference=reference,
            buyer_id=buyer_id,
            buyer_email="ada@example.com",
            items=items,
            currency=items[0].currency,
            total_minor=sum(i.unit_price_minor * i.quantity for i in items),
            status=PENDING,
            created_at=datetime.now(timezone.utc),
        )
        await store.put(ORDERS, order.id, order.to_document())
        return order

    return make


@pytest.fixture
def auth_headers():
    def make(uid: str, email: Optional[str] = None) -> Dict[str, str]:
        claims = {"sub": uid}
        if email:
            claims["email"] = email
        return {"Authorization": f"Bearer {create_access_token(claims)}"}

    return make


@pytest_asyncio.fixture
async def client(store: MemoryDocumentStore, gateway: FakePaystackGateway):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_gateway] = lambda: gateway
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()
