# ticketing/models/order.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from ticketing.models.base import CamelModel

PENDING = "pending"
PAID = "paid"
REFUNDED = "refunded"
FAILED = "failed"


class LineItem(CamelModel):
    event_id: str
    ticket_type_id: str
    name: str
    unit_price_minor: int = Field(gt=0)  # kobo/cents, never a float
    quantity: int = Field(ge=1)
    currency: str
    event_title: Optional[str] = None

    @field_validator("currency")
    def normalize_currency(cls, v):
        return v.strip().upper()


class OrderBase(CamelModel):
    reference: str
    buyer_id: Optional[str] = None
    buyer_email: str
    items: List[LineItem]
    currency: str
    total_minor: int
    status: str = PENDING
    created_at: datetime

    @field_validator("status")
    def validate_status(cls, v):
        if v not in (PENDING, PAID, REFUNDED, FAILED):
            raise ValueError("status must be one of pending, paid, refunded, failed")
        return v


class Order(OrderBase):
    id: str
    paid_at: Optional[datetime] = None
    ticket_ids: List[str] = []
    seller_ids: List[str] = []
    synthetic: bool = False


class CheckoutRequest(CamelModel):
    items: List[LineItem]
    buyer_email: Optional[str] = None


class PendingOrder(CamelModel):
    order_id: str
    reference: str
    total_minor: int
    currency: str
    items: List[LineItem] = []


class CheckoutResponse(CamelModel):
    authorization_url: str
    reference: str
    order_id: str


class ReconcileResult(CamelModel):
    order_id: str
    ticket_ids: List[str]
    created: bool  # False when the order had already been settled


class VerifyResponse(CamelModel):
    ok: bool
    order_id: Optional[str] = None
    ticket_ids: List[str] = []
    created: bool = False
