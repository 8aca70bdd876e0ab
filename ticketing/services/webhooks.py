# ticketing/services/webhooks.py
import json
from typing import Any, Dict, Optional

import structlog

from ticketing import config
from ticketing.exceptions import OrderNotFound, SignatureError, ValidationError
from ticketing.models.order import ReconcileResult
from ticketing.services.paystack import PaymentGateway
from ticketing.services.reconciliation import reconcile
from ticketing.store.base import DocumentStore

logger = structlog.get_logger(__name__)


class PaystackEventHandler:
    """Routes a verified Paystack webhook payload to the matching handler."""

    def __init__(self, store: DocumentStore, payload: Dict[str, Any]):
        self.store = store
        self.payload = payload

    async def handle(self) -> Optional[ReconcileResult]:
        event_type = self.payload.get("event")
        data = self.payload.get("data")
        if not event_type or not isinstance(data, dict):
            logger.info("paystack_webhook_empty_payload")
            return None
        if event_type in config.PAYSTACK_SUCCESS_EVENTS:
            return await self.handle_charge_success(data)
        logger.info("paystack_webhook_unhandled_event", event_type=event_type)
        return None

    async def handle_charge_success(self, data: Dict[str, Any]) -> Optional[ReconcileResult]:
        reference = data.get("reference")
        if not reference:
            raise ValidationError("No reference.")
        try:
            return await reconcile(self.store, reference, gateway_data=data)
        except OrderNotFound:
            # Foreign or already-purged reference; acknowledge so the gateway stops retrying.
            logger.warning("paystack_webhook_unknown_reference", reference=reference)
            return None


async def handle_webhook(
    store: DocumentStore,
    gateway: PaymentGateway,
    raw_body: bytes,
    signature: Optional[str],
) -> Optional[ReconcileResult]:
    try:
        gateway.validate_signature(raw_body, signature)
    except SignatureError:
        logger.warning("paystack_webhook_invalid_signature", has_signature=bool(signature))
        raise

    try:
        payload = json.loads(raw_body)
    except ValueError:
        raise ValidationError("Invalid payload.")
    if not isinstance(payload, dict):
        raise ValidationError("Invalid payload.")
    return await PaystackEventHandler(store, payload).handle()
