# ticketing/models/ticket.py
from datetime import datetime
from typing import Optional

from ticketing.models.base import CamelModel

UNUSED = "unused"
CHECKED_IN = "checked_in"
REFUNDED = "refunded"

VALID = "valid"
ALREADY_USED = "already_used"


class Ticket(CamelModel):
    id: str
    order_id: str
    order_reference: Optional[str] = None
    buyer_id: Optional[str] = None
    buyer_email: Optional[str] = None
    seller_id: Optional[str] = None
    event_id: str
    event_title: Optional[str] = None
    ticket_type_id: str
    type_name: Optional[str] = None
    status: str = UNUSED
    issued_at: datetime
    scanned_at: Optional[datetime] = None
    scanned_by: Optional[str] = None
    qr_payload: str


class Scan(CamelModel):
    id: str
    ticket_id: str
    scanned_by: str
    scanned_at: datetime
    event_id: str


class ScanRequest(CamelModel):
    qr: str


class CheckInResult(CamelModel):
    result: str  # "valid" or "already_used"
    ticket: Ticket
