# ticketing/utils/pricing.py
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from ticketing.exceptions import CurrencyMismatch, EmptyCart
from ticketing.models.event import TicketType
from ticketing.models.order import LineItem


def ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def cart_currency(items: List[LineItem]) -> str:
    """Return the single currency shared by every line item."""
    if not items:
        raise EmptyCart()
    currency = items[0].currency
    if any(item.currency != currency for item in items):
        raise CurrencyMismatch()
    return currency


def calculate_total_minor(items: Iterable[LineItem]) -> int:
    # Integer minor units only: no float ever enters the sum.
    return sum(item.unit_price_minor * item.quantity for item in items)


def ticket_count(items: Iterable[LineItem]) -> int:
    return sum(item.quantity for item in items)


def min_price_minor(ticket_types: Iterable[TicketType]) -> Optional[int]:
    prices = [tt.price_minor for tt in ticket_types]
    return min(prices) if prices else None
