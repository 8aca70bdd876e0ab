# ticketing/services/affiliates.py
from typing import List

import structlog

from ticketing.models.affiliate import AffiliateCode
from ticketing.store.base import AFFILIATES, DocumentStore
from ticketing.utils.pricing import utcnow

logger = structlog.get_logger(__name__)


def affiliate_id(seller_id: str, code: str) -> str:
    return f"{seller_id}_{code}"


async def create_affiliate_code(store: DocumentStore, seller_id: str, code: str) -> AffiliateCode:
    """Codes are unique per seller; creating one twice returns the existing code."""
    doc_id = affiliate_id(seller_id, code)
    existing = await store.get(AFFILIATES, doc_id)
    if existing:
        return AffiliateCode(**existing)

    affiliate = AffiliateCode(id=doc_id, seller_id=seller_id, code=code, created_at=utcnow())
    await store.put(AFFILIATES, doc_id, affiliate.to_document())
    logger.info("affiliate_code_created", seller_id=seller_id, code=code)
    return affiliate


async def list_affiliate_codes(store: DocumentStore, seller_id: str) -> List[AffiliateCode]:
    docs = await store.find(AFFILIATES, {"sellerId": seller_id}, order_by=("createdAt", True))
    return [AffiliateCode(**doc) for doc in docs]
