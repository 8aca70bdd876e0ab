# ticketing/services/payouts.py
from typing import List, Optional

import structlog

from ticketing.models.payout import PayoutRequest, PayoutSettings
from ticketing.store.base import PAYOUT_REQUESTS, PAYOUT_SETTINGS, DocumentStore, new_id
from ticketing.utils.pricing import utcnow

logger = structlog.get_logger(__name__)


async def get_payout_settings(store: DocumentStore, seller_id: str) -> Optional[PayoutSettings]:
    doc = await store.get(PAYOUT_SETTINGS, seller_id)
    return PayoutSettings(**doc) if doc else None


async def save_payout_settings(store: DocumentStore, seller_id: str, settings: PayoutSettings) -> PayoutSettings:
    settings = settings.model_copy(update={"updated_at": utcnow()})
    await store.put(PAYOUT_SETTINGS, seller_id, settings.to_document(), merge=True)
    logger.info("payout_settings_saved", seller_id=seller_id)
    return settings


async def request_payout(store: DocumentStore, seller_id: str, amount_minor: int) -> PayoutRequest:
    payout = PayoutRequest(id=new_id(), seller_id=seller_id, amount_minor=amount_minor, created_at=utcnow())
    await store.put(PAYOUT_REQUESTS, payout.id, payout.to_document())
    logger.info("payout_requested", payout_id=payout.id, seller_id=seller_id, amount_minor=amount_minor)
    return payout


async def list_payout_requests(store: DocumentStore, seller_id: str) -> List[PayoutRequest]:
    docs = await store.find(PAYOUT_REQUESTS, {"sellerId": seller_id}, order_by=("createdAt", True))
    return [PayoutRequest(**doc) for doc in docs]
