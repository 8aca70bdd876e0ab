# ticketing/services/intake.py
import secrets
import string
import time
import uuid
from collections import defaultdict
from typing import Dict, List, Optional

import structlog

from ticketing import config
from ticketing.exceptions import (
    EmptyCart,
    InvalidAmount,
    MaxPerOrderExceeded,
    MissingBuyerEmail,
    PriceMismatch,
    SoldOut,
    StoreError,
    UnknownEvent,
    UnknownTicketType,
    UnsupportedCurrency,
)
from ticketing.models.event import Event
from ticketing.models.order import PENDING, LineItem, Order, PendingOrder
from ticketing.store.base import EVENTS, ORDERS, DocumentStore
from ticketing.utils.pricing import calculate_total_minor, cart_currency, utcnow

logger = structlog.get_logger(__name__)

_REFERENCE_ALPHABET = string.ascii_lowercase + string.digits
# New order ids are derived from the payment reference, so an order rebuilt from
# gateway metadata lands on the same document as the one intake meant to write.
_ORDER_NAMESPACE = uuid.UUID("6f1d7c52-0c4b-4c57-9a8e-3d2f5b8e1a90")


def generate_reference(prefix: str = config.ORDER_REFERENCE_PREFIX) -> str:
    suffix = "".join(secrets.choice(_REFERENCE_ALPHABET) for _ in range(6))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


def order_id_for(reference: str) -> str:
    return uuid.uuid5(_ORDER_NAMESPACE, reference).hex


async def _check_catalogue(store: DocumentStore, items: List[LineItem]) -> Dict[str, Event]:
    events: Dict[str, Event] = {}
    for item in items:
        if item.event_id not in events:
            doc = await store.get(EVENTS, item.event_id)
            if doc is None:
                raise UnknownEvent()
            events[item.event_id] = Event(**doc)

    requested = defaultdict(int)
    for item in items:
        ticket_type = events[item.event_id].ticket_type(item.ticket_type_id)
        if ticket_type is None:
            raise UnknownTicketType()
        if ticket_type.price_minor != item.unit_price_minor:
            raise PriceMismatch()
        requested[(item.event_id, item.ticket_type_id)] += item.quantity

    for (event_id, ticket_type_id), quantity in requested.items():
        ticket_type = events[event_id].ticket_type(ticket_type_id)
        if ticket_type.max_per_order and quantity > ticket_type.max_per_order:
            raise MaxPerOrderExceeded(f"At most {ticket_type.max_per_order} {ticket_type.name} tickets per order.")
        # Informational only; the authoritative count moves inside reconciliation.
        if quantity > ticket_type.remaining:
            raise SoldOut(f"Not enough {ticket_type.name} tickets left.")
    return events


async def create_pending_order(
    store: DocumentStore,
    items: List[LineItem],
    buyer_email: Optional[str],
    buyer_id: Optional[str] = None,
    supported_currency: str = config.PAYSTACK_CURRENCY,
) -> PendingOrder:
    """Validate the cart and record a pending order ahead of the gateway redirect.

    The order is written before any payment session exists so that a payment
    confirmed by the gateway can always be matched to it later, even if the
    buyer never comes back to the callback page.
    """
    if not items:
        raise EmptyCart()
    if not buyer_email or not buyer_email.strip():
        raise MissingBuyerEmail()

    currency = cart_currency(items)
    if currency != supported_currency:
        raise UnsupportedCurrency(f"Only {supported_currency} payments are supported for now.")

    total_minor = calculate_total_minor(items)
    if total_minor <= 0:
        raise InvalidAmount()

    events = await _check_catalogue(store, items)
    # Labels come from the catalogue; only ids, quantities and the checked price come from the cart.
    items = [
        item.model_copy(
            update={
                "name": events[item.event_id].ticket_type(item.ticket_type_id).name,
                "event_title": events[item.event_id].title,
            }
        )
        for item in items
    ]

    reference = generate_reference()
    order = Order(
        id=order_id_for(reference),
        reference=reference,
        buyer_id=buyer_id,
        buyer_email=buyer_email.strip(),
        items=items,
        currency=currency,
        total_minor=total_minor,
        status=PENDING,
        created_at=utcnow(),
    )

    try:
        await store.put(ORDERS, order.id, order.to_document())
    except StoreError:
        # Not retried: a blind retry could leave two pending orders behind.
        # The gateway metadata still carries the items for reconciliation.
        logger.warning("pending_order_persist_failed", reference=reference, order_id=order.id, exc_info=True)
    else:
        logger.info(
            "pending_order_created",
            reference=reference,
            order_id=order.id,
            total_minor=total_minor,
            currency=currency,
        )

    return PendingOrder(
        order_id=order.id, reference=reference, total_minor=total_minor, currency=currency, items=items
    )
