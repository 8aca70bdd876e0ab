# ticketing/services/reconciliation.py
import json
from collections import defaultdict
from typing import Any, Dict, List, Optional, Tuple

import pydantic
import structlog

from ticketing.exceptions import OrderNotFound, ReconciliationFailed, StoreError
from ticketing.models.order import PAID, PENDING, LineItem, Order, ReconcileResult
from ticketing.models.ticket import UNUSED, Ticket
from ticketing.services.intake import order_id_for
from ticketing.store.base import EVENTS, ORDERS, TICKETS, DocumentStore, Transaction, new_id
from ticketing.utils.pricing import calculate_total_minor, utcnow

logger = structlog.get_logger(__name__)


def build_qr_payload(ticket_id: str, event_id: str, ticket_type_id: str) -> str:
    return json.dumps({"t": ticket_id, "e": event_id, "tt": ticket_type_id}, separators=(",", ":"))


def _gateway_metadata(gateway_data: Dict[str, Any]) -> Dict[str, Any]:
    metadata = gateway_data.get("metadata") or {}
    # Paystack echoes metadata back as a JSON string when it was sent as one.
    if isinstance(metadata, str):
        try:
            metadata = json.loads(metadata)
        except ValueError:
            return {}
    return metadata if isinstance(metadata, dict) else {}


def synthetic_order(reference: str, gateway_data: Dict[str, Any]) -> Optional[Order]:
    """Rebuild an order from verified gateway data when no local record exists."""
    metadata = _gateway_metadata(gateway_data)
    raw_items = metadata.get("items")
    if not raw_items:
        return None
    try:
        items = [LineItem(**raw) for raw in raw_items]
    except (pydantic.ValidationError, TypeError):
        logger.warning("synthetic_order_bad_metadata", reference=reference, exc_info=True)
        return None

    customer = gateway_data.get("customer") or {}
    amount = gateway_data.get("amount")
    return Order(
        id=order_id_for(reference),
        reference=reference,
        buyer_id=metadata.get("buyerId"),
        buyer_email=customer.get("email") or metadata.get("buyerEmail") or "",
        items=items,
        currency=(gateway_data.get("currency") or items[0].currency).upper(),
        total_minor=int(amount) if amount is not None else calculate_total_minor(items),
        status=PENDING,
        created_at=utcnow(),
        synthetic=True,
    )


async def _issue(tx: Transaction, order: Order) -> Tuple[ReconcileResult, List[Dict[str, Any]]]:
    """Mark ``order`` paid and write its tickets into ``tx``.

    Returns the result plus inventory notes to log once the commit succeeds.
    """
    notes: List[Dict[str, Any]] = []
    events: Dict[str, Optional[Dict[str, Any]]] = {}
    for item in order.items:
        if item.event_id not in events:
            events[item.event_id] = await tx.get(EVENTS, item.event_id)

    now = utcnow()
    ticket_ids: List[str] = []
    sold = defaultdict(int)
    for item in order.items:
        event = events[item.event_id] or {}
        ticket_type = next((tt for tt in event.get("ticketTypes") or [] if tt.get("id") == item.ticket_type_id), {})
        for _ in range(item.quantity):
            ticket_id = new_id()
            ticket = Ticket(
                id=ticket_id,
                order_id=order.id,
                order_reference=order.reference,
                buyer_id=order.buyer_id,
                buyer_email=order.buyer_email or None,
                seller_id=event.get("sellerId"),
                event_id=item.event_id,
                event_title=event.get("title") or item.event_title,
                ticket_type_id=item.ticket_type_id,
                type_name=ticket_type.get("name") or item.name,
                status=UNUSED,
                issued_at=now,
                qr_payload=build_qr_payload(ticket_id, item.event_id, item.ticket_type_id),
            )
            tx.set(TICKETS, ticket_id, ticket.to_document())
            ticket_ids.append(ticket_id)
        sold[(item.event_id, item.ticket_type_id)] += item.quantity

    for event_id, event in events.items():
        if event is None:
            notes.append({"event": "reconcile_event_missing", "event_id": event_id})
            continue
        ticket_types = event.get("ticketTypes") or []
        for ticket_type in ticket_types:
            quantity = sold.get((event_id, ticket_type.get("id")))
            if not quantity:
                continue
            ticket_type["quantitySold"] = ticket_type.get("quantitySold", 0) + quantity
            if ticket_type["quantitySold"] > ticket_type.get("quantityTotal", 0):
                notes.append(
                    {
                        "event": "ticket_type_oversold",
                        "event_id": event_id,
                        "ticket_type_id": ticket_type.get("id"),
                        "quantity_sold": ticket_type["quantitySold"],
                        "quantity_total": ticket_type.get("quantityTotal", 0),
                    }
                )
        tx.update(EVENTS, event_id, {"ticketTypes": ticket_types})

    seller_ids = sorted({e["sellerId"] for e in events.values() if e and e.get("sellerId")})
    paid = order.model_copy(update={"status": PAID, "paid_at": now, "ticket_ids": ticket_ids, "seller_ids": seller_ids})
    tx.set(ORDERS, order.id, paid.to_document())
    return ReconcileResult(order_id=order.id, ticket_ids=ticket_ids, created=True), notes


async def _find_order_id(store: DocumentStore, reference: str) -> Optional[str]:
    docs = await store.find(ORDERS, {"reference": reference}, limit=1)
    return docs[0]["id"] if docs else None


async def reconcile(
    store: DocumentStore,
    reference: str,
    gateway_data: Optional[Dict[str, Any]] = None,
) -> ReconcileResult:
    """Turn a gateway-confirmed payment into a paid order and its tickets, exactly once.

    The order is found by ``reference`` and re-read inside the transaction,
    so a webhook and a buyer callback racing on the same reference cannot
    both issue tickets: the loser's commit conflicts, is re-run by the store,
    and then sees the order already paid. ``gateway_data`` must come from a
    verified source; it is only used to rebuild the order when no local
    record exists.
    """
    order_id = order_id_for(reference)

    async def settle(tx: Transaction):
        doc = await tx.get(ORDERS, order_id)
        if doc is None:
            order = synthetic_order(reference, gateway_data) if gateway_data else None
            if order is None:
                raise OrderNotFound()
        else:
            order = Order(**doc)

        if order.status == PAID:
            return ReconcileResult(order_id=order.id, ticket_ids=order.ticket_ids, created=False), []
        if order.status != PENDING:
            # Money arrived for an order that can no longer be paid; a human has to look at it.
            raise ReconciliationFailed(order.id, reference)
        return await _issue(tx, order)

    try:
        # Orders rebuilt from gateway data live under the id derived from the reference.
        order_id = await _find_order_id(store, reference) or order_id
        result, notes = await store.transact(settle)
    except StoreError as exc:
        logger.error("reconciliation_failed", order_id=order_id, reference=reference, exc_info=True)
        raise ReconciliationFailed(order_id, reference) from exc
    except ReconciliationFailed:
        logger.error("reconciliation_order_not_payable", order_id=order_id, reference=reference)
        raise

    for note in notes:
        logger.warning(note.pop("event"), reference=reference, **note)

    if result.created:
        logger.info("order_reconciled", order_id=order_id, reference=reference, ticket_count=len(result.ticket_ids))
    else:
        logger.info("order_already_reconciled", order_id=order_id, reference=reference)
    return result
