# ticketing/models/event.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from ticketing.models.base import CamelModel

CATEGORIES = ("music", "sport", "conference", "festival", "theatre", "comedy")
DRAFT = "draft"
PUBLISHED = "published"


class TicketTypeCreate(CamelModel):
    name: str
    price_minor: int = Field(gt=0)
    currency: Optional[str] = None  # defaults to the event currency
    quantity_total: int = Field(ge=0)
    max_per_order: Optional[int] = Field(default=None, ge=1)


class TicketType(TicketTypeCreate):
    id: str
    currency: str
    quantity_sold: int = 0

    @property
    def remaining(self) -> int:
        return max(self.quantity_total - self.quantity_sold, 0)


class EventBase(CamelModel):
    title: str
    description: Optional[str] = None
    start_at: datetime
    end_at: Optional[datetime] = None
    venue: str
    city: Optional[str] = None
    country: Optional[str] = None
    category: str
    status: str = DRAFT
    currency: str

    @field_validator("category")
    def validate_category(cls, v):
        if v not in CATEGORIES:
            raise ValueError(f"category must be one of {', '.join(CATEGORIES)}")
        return v

    @field_validator("status")
    def validate_status(cls, v):
        if v not in (DRAFT, PUBLISHED):
            raise ValueError("status must be either 'draft' or 'published'")
        return v

    @field_validator("currency")
    def normalize_currency(cls, v):
        return v.strip().upper()


class EventCreate(EventBase):
    ticket_types: List[TicketTypeCreate]


class Event(EventBase):
    id: str
    seller_id: str
    ticket_types: List[TicketType]
    min_price_minor: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    def ticket_type(self, ticket_type_id: str) -> Optional[TicketType]:
        return next((tt for tt in self.ticket_types if tt.id == ticket_type_id), None)


class EventUpdate(CamelModel):
    """Partial edit of an event; ticket types and currency are fixed once created."""

    title: Optional[str] = None
    description: Optional[str] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    venue: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    category: Optional[str] = None
    status: Optional[str] = None

    @field_validator("category")
    def validate_category(cls, v):
        if v is not None and v not in CATEGORIES:
            raise ValueError(f"category must be one of {', '.join(CATEGORIES)}")
        return v

    @field_validator("status")
    def validate_status(cls, v):
        if v is not None and v not in (DRAFT, PUBLISHED):
            raise ValueError("status must be either 'draft' or 'published'")
        return v
