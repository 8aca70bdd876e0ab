# ticketing/routes/customer.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Request

from ticketing import config
from ticketing.dependencies import get_gateway, get_store
from ticketing.models.access import AccessGrant
from ticketing.models.order import CheckoutRequest, CheckoutResponse
from ticketing.models.profile import Profile, ProfileUpdate
from ticketing.models.ticket import Ticket
from ticketing.services import access, intake, profiles, reporting
from ticketing.services.paystack import PaymentGateway
from ticketing.services.redemption import delete_ticket
from ticketing.store.base import DocumentStore
from ticketing.utils.auth_utils import CurrentUser, get_current_user, get_optional_user

router = APIRouter()


def callback_url_for(request: Request) -> str:
    return config.PAYSTACK_CALLBACK_URL or f"{str(request.base_url).rstrip('/')}/paystack/callback"


@router.post("/checkout", response_model=CheckoutResponse, response_model_by_alias=True)
async def checkout(
    body: CheckoutRequest,
    request: Request,
    user: Optional[CurrentUser] = Depends(get_optional_user),
    store: DocumentStore = Depends(get_store),
    gateway: PaymentGateway = Depends(get_gateway),
):
    buyer_id = user.uid if user else None
    buyer_email = (body.buyer_email or (user.email if user else None) or "").strip() or None

    # The pending order is written before the gateway is contacted.
    pending = await intake.create_pending_order(store, body.items, buyer_email, buyer_id)

    authorization_url = await gateway.init_session(
        total_minor=pending.total_minor,
        currency=pending.currency,
        buyer_email=buyer_email,
        reference=pending.reference,
        callback_url=callback_url_for(request),
        # Line items ride along so a paid order can be rebuilt if the local record was lost.
        metadata={
            "buyerId": buyer_id,
            "buyerEmail": buyer_email,
            "items": [item.to_document() for item in pending.items],
        },
    )
    return CheckoutResponse(authorization_url=authorization_url, reference=pending.reference, order_id=pending.order_id)


@router.get("/tickets", response_model=List[Ticket], response_model_by_alias=True)
async def my_tickets(user: CurrentUser = Depends(get_current_user), store: DocumentStore = Depends(get_store)):
    return await reporting.list_buyer_tickets(store, user.uid)


@router.delete("/tickets/{ticket_id}", status_code=204)
async def remove_ticket(
    ticket_id: str,
    user: CurrentUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    await delete_ticket(store, ticket_id, user.uid)


@router.get("/access-invites", response_model=List[AccessGrant], response_model_by_alias=True)
async def my_access_invites(user: CurrentUser = Depends(get_current_user), store: DocumentStore = Depends(get_store)):
    if not user.email:
        return []
    return await access.list_invites_for_member(store, user.email)


@router.post("/access-invites/{invite_id}/accept", response_model=AccessGrant, response_model_by_alias=True)
async def accept_access_invite(
    invite_id: str,
    user: CurrentUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    return await access.accept_invite(store, invite_id, user.uid, user.email)


@router.get("/profile", response_model=Optional[Profile], response_model_by_alias=True)
async def my_profile(user: CurrentUser = Depends(get_current_user), store: DocumentStore = Depends(get_store)):
    return await profiles.get_profile(store, user.uid)


@router.put("/profile", response_model=Profile, response_model_by_alias=True)
async def save_my_profile(
    body: ProfileUpdate,
    user: CurrentUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    return await profiles.upsert_profile(store, user.uid, body)
