# ticketing/models/affiliate.py
import re
from datetime import datetime

from pydantic import field_validator

from ticketing.models.base import CamelModel

CODE_PATTERN = re.compile(r"^[A-Z0-9][A-Z0-9_-]{1,31}$")


class AffiliateCodeCreate(CamelModel):
    code: str

    @field_validator("code")
    def normalize_code(cls, v):
        v = v.strip().upper()
        if not CODE_PATTERN.match(v):
            raise ValueError("code must be 2-32 letters, digits, '-' or '_'")
        return v


class AffiliateCode(CamelModel):
    id: str
    seller_id: str
    code: str
    created_at: datetime
