# ticketing/services/events.py
from typing import List, Optional

import structlog

from ticketing.exceptions import CurrencyMismatch, EventNotFound, NotAuthorized
from ticketing.models.event import PUBLISHED, Event, EventCreate, EventUpdate, TicketType
from ticketing.store.base import EVENTS, DocumentStore, new_id
from ticketing.utils.pricing import min_price_minor, utcnow

logger = structlog.get_logger(__name__)


async def create_event(store: DocumentStore, seller_id: str, payload: EventCreate) -> Event:
    ticket_types = []
    for ticket_type in payload.ticket_types:
        currency = (ticket_type.currency or payload.currency).strip().upper()
        if currency != payload.currency:
            raise CurrencyMismatch("Ticket types must use the event currency.")
        ticket_types.append(
            TicketType(**ticket_type.model_dump(exclude={"currency"}), id=new_id(), currency=currency, quantity_sold=0)
        )

    event = Event(
        **payload.model_dump(exclude={"ticket_types"}),
        id=new_id(),
        seller_id=seller_id,
        ticket_types=ticket_types,
        min_price_minor=min_price_minor(ticket_types),
        created_at=utcnow(),
    )
    await store.put(EVENTS, event.id, event.to_document())
    logger.info("event_created", event_id=event.id, seller_id=seller_id, ticket_types=len(ticket_types))
    return event


async def get_event(store: DocumentStore, event_id: str) -> Optional[Event]:
    doc = await store.get(EVENTS, event_id)
    return Event(**doc) if doc else None


async def list_seller_events(store: DocumentStore, seller_id: str) -> List[Event]:
    docs = await store.find(EVENTS, {"sellerId": seller_id}, order_by=("createdAt", True))
    return [Event(**doc) for doc in docs]


async def list_published_events(store: DocumentStore, limit: int = 100) -> List[Event]:
    docs = await store.find(EVENTS, {"status": PUBLISHED}, order_by=("startAt", False), limit=limit)
    return [Event(**doc) for doc in docs]


async def _owned_event(tx, event_id: str, seller_id: str) -> dict:
    doc = await tx.get(EVENTS, event_id)
    if doc is None:
        raise EventNotFound()
    if doc.get("sellerId") != seller_id:
        raise NotAuthorized("Not your event.")
    return doc


async def update_event(store: DocumentStore, event_id: str, seller_id: str, patch: EventUpdate) -> Event:
    changes = patch.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)

    async def apply(tx):
        doc = await _owned_event(tx, event_id, seller_id)
        changes["updatedAt"] = utcnow()
        tx.update(EVENTS, event_id, changes)
        return Event(**{**doc, **changes})

    event = await store.transact(apply)
    logger.info("event_updated", event_id=event_id, seller_id=seller_id, fields=sorted(changes))
    return event


async def delete_event(store: DocumentStore, event_id: str, seller_id: str) -> None:
    """Remove an event and its ticket types. Tickets already issued keep their copies of the labels."""

    async def remove(tx):
        await _owned_event(tx, event_id, seller_id)
        tx.delete(EVENTS, event_id)

    await store.transact(remove)
    logger.info("event_deleted", event_id=event_id, seller_id=seller_id)
