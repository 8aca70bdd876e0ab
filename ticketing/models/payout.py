# ticketing/models/payout.py
from datetime import datetime
from typing import Optional

from pydantic import Field

from ticketing.models.base import CamelModel


class PayoutSettings(CamelModel):
    bank_name: str
    bank_code: Optional[str] = None
    account_number: str
    account_name: str
    updated_at: Optional[datetime] = None


class PayoutRequestCreate(CamelModel):
    amount_minor: int = Field(gt=0)


class PayoutRequest(CamelModel):
    id: str
    seller_id: str
    amount_minor: int
    status: str = "pending"
    created_at: datetime
