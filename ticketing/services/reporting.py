# ticketing/services/reporting.py
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from ticketing.models.event import PUBLISHED
from ticketing.models.order import Order
from ticketing.models.report import Customer, SellerStats
from ticketing.models.ticket import Ticket
from ticketing.store.base import EVENTS, ORDERS, TICKETS, DocumentStore
from ticketing.utils.pricing import ensure_utc, utcnow


async def list_buyer_tickets(store: DocumentStore, buyer_id: str) -> List[Ticket]:
    docs = await store.find(TICKETS, {"buyerId": buyer_id}, order_by=("issuedAt", True))
    return [Ticket(**doc) for doc in docs]


async def list_seller_tickets(store: DocumentStore, seller_id: str) -> List[Ticket]:
    docs = await store.find(TICKETS, {"sellerId": seller_id}, order_by=("issuedAt", True))
    return [Ticket(**doc) for doc in docs]


async def list_seller_orders(store: DocumentStore, seller_id: str) -> List[Order]:
    # sellerIds is only written when an order is paid, so these are paid orders.
    docs = await store.find(ORDERS, {"sellerIds": seller_id}, order_by=("createdAt", True))
    return [Order(**doc) for doc in docs]


async def _seller_event_ids(store: DocumentStore, seller_id: str) -> Dict[str, str]:
    docs = await store.find(EVENTS, {"sellerId": seller_id})
    return {doc["id"]: doc.get("status") for doc in docs}


def _seller_share(order: Order, event_ids) -> Dict[str, int]:
    items = [item for item in order.items if item.event_id in event_ids]
    return {
        "revenue_minor": sum(item.unit_price_minor * item.quantity for item in items),
        "tickets": sum(item.quantity for item in items),
    }


async def seller_stats(
    store: DocumentStore,
    seller_id: str,
    days: int = 30,
    now: Optional[datetime] = None,
) -> SellerStats:
    """Revenue and sales for one seller, with daily series over the last ``days`` days.

    Orders can mix events from several sellers, so revenue only counts the
    line items that belong to this seller's events.
    """
    events = await _seller_event_ids(store, seller_id)
    orders = await list_seller_orders(store, seller_id)
    tickets = await list_seller_tickets(store, seller_id)

    now = ensure_utc(now or utcnow())
    start = (now - timedelta(days=days - 1)).replace(hour=0, minute=0, second=0, microsecond=0)
    daily_revenue = [0] * days
    daily_orders = [0] * days

    revenue_minor = 0
    for order in orders:
        share = _seller_share(order, events)
        revenue_minor += share["revenue_minor"]
        day = (ensure_utc(order.created_at) - start).days
        if 0 <= day < days:
            daily_revenue[day] += share["revenue_minor"]
            daily_orders[day] += 1

    return SellerStats(
        revenue_minor=revenue_minor,
        tickets_sold=len(tickets),
        active_events=sum(1 for status in events.values() if status == PUBLISHED),
        daily_revenue=daily_revenue,
        daily_orders=daily_orders,
        start_date=start,
    )


async def list_customers(store: DocumentStore, seller_id: str) -> List[Customer]:
    """Buyers of one seller, grouped by lower-cased email, busiest first."""
    events = await _seller_event_ids(store, seller_id)
    customers: Dict[str, Customer] = {}
    for order in await list_seller_orders(store, seller_id):
        key = (order.buyer_email or order.buyer_id or "unknown").lower()
        entry = customers.get(key) or Customer(email=order.buyer_email or "unknown", last_order_at=order.created_at)
        entry.orders += 1
        entry.tickets += _seller_share(order, events)["tickets"]
        if ensure_utc(order.created_at) > ensure_utc(entry.last_order_at):
            entry.last_order_at = order.created_at
        customers[key] = entry
    return sorted(customers.values(), key=lambda c: c.orders, reverse=True)
