# ticketing/routes/paystack.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from ticketing.dependencies import get_gateway, get_store
from ticketing.exceptions import ValidationError
from ticketing.models.order import VerifyResponse
from ticketing.services.paystack import SIGNATURE_HEADER, PaymentGateway
from ticketing.services.reconciliation import reconcile
from ticketing.services.webhooks import handle_webhook
from ticketing.store.base import DocumentStore

router = APIRouter()


async def settle_payment(reference: str, store: DocumentStore, gateway: PaymentGateway) -> VerifyResponse:
    verification = await gateway.verify(reference)
    if not verification.paid:
        return VerifyResponse(ok=False)

    result = await reconcile(store, reference, gateway_data=verification.data)
    return VerifyResponse(ok=True, order_id=result.order_id, ticket_ids=result.ticket_ids, created=result.created)


@router.get("/verify", response_model=VerifyResponse, response_model_by_alias=True)
async def verify_payment(
    reference: str = Query(..., min_length=1),
    store: DocumentStore = Depends(get_store),
    gateway: PaymentGateway = Depends(get_gateway),
):
    """Buyer-facing check: confirm with Paystack, then settle the order."""
    return await settle_payment(reference, store, gateway)


@router.get("/callback", response_model=VerifyResponse, response_model_by_alias=True)
async def paystack_callback(
    reference: Optional[str] = None,
    trxref: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
    gateway: PaymentGateway = Depends(get_gateway),
):
    """Where Paystack sends the buyer back; it appends ``reference`` and ``trxref``."""
    reference = reference or trxref
    if not reference:
        raise ValidationError("No reference.")
    return await settle_payment(reference, store, gateway)


@router.post("/webhook")
async def paystack_webhook(
    request: Request,
    store: DocumentStore = Depends(get_store),
    gateway: PaymentGateway = Depends(get_gateway),
):
    # The signature covers the exact bytes Paystack sent, so read the raw body.
    raw_body = await request.body()
    await handle_webhook(store, gateway, raw_body, request.headers.get(SIGNATURE_HEADER))
    return {"received": True}
