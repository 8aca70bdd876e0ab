# ticketing/services/redemption.py
import json

import structlog

from ticketing.exceptions import (
    InvalidQrPayload,
    InvalidTicket,
    NotAuthorized,
    TicketingError,
    TicketNotFound,
)
from ticketing.models.ticket import ALREADY_USED, CHECKED_IN, UNUSED, VALID, CheckInResult, Scan, Ticket
from ticketing.services.access import can_scan_for
from ticketing.store.base import ORDERS, SCANS, TICKETS, DocumentStore, new_id
from ticketing.utils.pricing import utcnow

logger = structlog.get_logger(__name__)


def parse_qr_payload(raw: str) -> str:
    """Return the ticket id from a scanned code: ``{"t", "e", "tt"}`` JSON or a bare id."""
    raw = (raw or "").strip()
    if not raw:
        raise InvalidQrPayload()
    if not raw.startswith("{"):
        return raw
    try:
        data = json.loads(raw)
    except ValueError:
        raise InvalidQrPayload()
    ticket_id = data.get("t") if isinstance(data, dict) else None
    if not ticket_id or not isinstance(ticket_id, str):
        raise InvalidQrPayload()
    return ticket_id


async def check_in(store: DocumentStore, ticket_id: str, scanner_id: str) -> CheckInResult:
    """Consume a ticket at the gate.

    The status read and the write happen in one transaction, so a double scan
    (even two gates at once) yields exactly one ``valid``.
    """

    async def redeem(tx):
        doc = await tx.get(TICKETS, ticket_id)
        if doc is None:
            raise TicketNotFound()
        ticket = Ticket(**doc)

        if ticket.seller_id is None:
            raise NotAuthorized()
        if ticket.seller_id != scanner_id and not await can_scan_for(tx, ticket.seller_id, scanner_id):
            raise NotAuthorized()

        if ticket.status == CHECKED_IN:
            return CheckInResult(result=ALREADY_USED, ticket=ticket)
        if ticket.status != UNUSED:
            raise InvalidTicket(f"Ticket is {ticket.status}.")

        now = utcnow()
        tx.update(TICKETS, ticket_id, {"status": CHECKED_IN, "scannedAt": now, "scannedBy": scanner_id})
        scan = Scan(id=new_id(), ticket_id=ticket_id, scanned_by=scanner_id, scanned_at=now, event_id=ticket.event_id)
        tx.set(SCANS, scan.id, scan.to_document())
        return CheckInResult(
            result=VALID,
            ticket=ticket.model_copy(update={"status": CHECKED_IN, "scanned_at": now, "scanned_by": scanner_id}),
        )

    try:
        result = await store.transact(redeem)
    except TicketingError as exc:
        logger.info("ticket_scan_rejected", ticket_id=ticket_id, scanner_id=scanner_id, reason=type(exc).__name__)
        raise

    if result.result == VALID:
        logger.info("ticket_checked_in", ticket_id=ticket_id, scanner_id=scanner_id, event_id=result.ticket.event_id)
    else:
        logger.info("ticket_already_used", ticket_id=ticket_id, scanner_id=scanner_id)
    return result


async def delete_ticket(store: DocumentStore, ticket_id: str, buyer_id: str) -> None:
    """A buyer may discard their own ticket until it has been scanned."""

    async def discard(tx):
        doc = await tx.get(TICKETS, ticket_id)
        if doc is None:
            raise TicketNotFound()
        if doc.get("buyerId") != buyer_id:
            raise NotAuthorized("Not your ticket.")
        if doc.get("status") != UNUSED:
            raise InvalidTicket("Cannot delete a ticket that has been checked in or refunded.")

        order = await tx.get(ORDERS, doc["orderId"]) if doc.get("orderId") else None
        if order is not None:
            remaining = [tid for tid in order.get("ticketIds") or [] if tid != ticket_id]
            tx.update(ORDERS, order["id"], {"ticketIds": remaining})
        tx.delete(TICKETS, ticket_id)

    await store.transact(discard)
    logger.info("ticket_deleted", ticket_id=ticket_id, buyer_id=buyer_id)
