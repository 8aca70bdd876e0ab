# ticketing/models/access.py
from datetime import datetime
from typing import Optional

from pydantic import field_validator

from ticketing.models.base import CamelModel

SCANNER = "scanner"
MANAGER = "manager"

PENDING = "pending"
ACTIVE = "active"


class AccessInviteRequest(CamelModel):
    member_email: str
    role: str = SCANNER

    @field_validator("role")
    def validate_role(cls, v):
        if v not in (SCANNER, MANAGER):
            raise ValueError("role must be either 'scanner' or 'manager'")
        return v

    @field_validator("member_email")
    def normalize_email(cls, v):
        return v.strip().lower()


class AccessGrant(CamelModel):
    id: str
    seller_id: str
    seller_email: Optional[str] = None
    member_email: str
    member_uid: Optional[str] = None
    role: str
    status: str = PENDING
    created_at: datetime
    accepted_at: Optional[datetime] = None
