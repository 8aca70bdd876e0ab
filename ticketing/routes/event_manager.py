# ticketing/routes/event_manager.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ticketing.dependencies import get_store
from ticketing.models.access import AccessGrant, AccessInviteRequest
from ticketing.models.affiliate import AffiliateCode, AffiliateCodeCreate
from ticketing.models.event import Event, EventCreate, EventUpdate
from ticketing.models.order import Order
from ticketing.models.payout import PayoutRequest, PayoutRequestCreate, PayoutSettings
from ticketing.models.report import Customer, SellerStats
from ticketing.models.ticket import CheckInResult, ScanRequest, Ticket
from ticketing.services import access, affiliates, events, payouts, reporting
from ticketing.services.redemption import check_in, parse_qr_payload
from ticketing.store.base import DocumentStore
from ticketing.utils.auth_utils import CurrentUser, get_current_user

router = APIRouter()


@router.post("/events", response_model=Event, response_model_by_alias=True, status_code=201)
async def create_event(
    event: EventCreate,
    user: CurrentUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    return await events.create_event(store, user.uid, event)


@router.get("/events", response_model=List[Event], response_model_by_alias=True)
async def my_events(user: CurrentUser = Depends(get_current_user), store: DocumentStore = Depends(get_store)):
    return await events.list_seller_events(store, user.uid)


@router.patch("/events/{event_id}", response_model=Event, response_model_by_alias=True)
async def update_event(
    event_id: str,
    patch: EventUpdate,
    user: CurrentUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    return await events.update_event(store, event_id, user.uid, patch)


@router.delete("/events/{event_id}", status_code=204)
async def delete_event(
    event_id: str,
    user: CurrentUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    await events.delete_event(store, event_id, user.uid)


@router.post("/scan", response_model=CheckInResult, response_model_by_alias=True)
async def scan_ticket(
    scan: ScanRequest,
    user: CurrentUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    """Gate check-in. Rejected scans come back as 403/404/409 and the scanner keeps going."""
    ticket_id = parse_qr_payload(scan.qr)
    return await check_in(store, ticket_id, user.uid)


@router.get("/orders", response_model=List[Order], response_model_by_alias=True)
async def seller_orders(user: CurrentUser = Depends(get_current_user), store: DocumentStore = Depends(get_store)):
    return await reporting.list_seller_orders(store, user.uid)


@router.get("/tickets", response_model=List[Ticket], response_model_by_alias=True)
async def seller_tickets(user: CurrentUser = Depends(get_current_user), store: DocumentStore = Depends(get_store)):
    return await reporting.list_seller_tickets(store, user.uid)


@router.get("/stats", response_model=SellerStats, response_model_by_alias=True)
async def seller_stats(
    days: int = Query(30, ge=1, le=366),
    user: CurrentUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    return await reporting.seller_stats(store, user.uid, days=days)


@router.get("/customers", response_model=List[Customer], response_model_by_alias=True)
async def seller_customers(user: CurrentUser = Depends(get_current_user), store: DocumentStore = Depends(get_store)):
    return await reporting.list_customers(store, user.uid)


@router.post("/access", response_model=AccessGrant, response_model_by_alias=True, status_code=201)
async def invite_access(
    invite: AccessInviteRequest,
    user: CurrentUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    return await access.invite_access(store, user.uid, user.email, invite.member_email, invite.role)


@router.get("/access", response_model=List[AccessGrant], response_model_by_alias=True)
async def list_access(user: CurrentUser = Depends(get_current_user), store: DocumentStore = Depends(get_store)):
    return await access.list_access_for_seller(store, user.uid)


@router.delete("/access/{invite_id}", status_code=204)
async def remove_access(
    invite_id: str,
    user: CurrentUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    await access.remove_access(store, invite_id, user.uid)


@router.get("/payout-settings", response_model=Optional[PayoutSettings], response_model_by_alias=True)
async def get_payout_settings(user: CurrentUser = Depends(get_current_user), store: DocumentStore = Depends(get_store)):
    return await payouts.get_payout_settings(store, user.uid)


@router.put("/payout-settings", response_model=PayoutSettings, response_model_by_alias=True)
async def save_payout_settings(
    settings: PayoutSettings,
    user: CurrentUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    return await payouts.save_payout_settings(store, user.uid, settings)


@router.post("/payouts", response_model=PayoutRequest, response_model_by_alias=True, status_code=201)
async def request_payout(
    body: PayoutRequestCreate,
    user: CurrentUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    return await payouts.request_payout(store, user.uid, body.amount_minor)


@router.get("/payouts", response_model=List[PayoutRequest], response_model_by_alias=True)
async def list_payouts(user: CurrentUser = Depends(get_current_user), store: DocumentStore = Depends(get_store)):
    return await payouts.list_payout_requests(store, user.uid)


@router.post("/affiliates", response_model=AffiliateCode, response_model_by_alias=True, status_code=201)
async def create_affiliate_code(
    body: AffiliateCodeCreate,
    user: CurrentUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    return await affiliates.create_affiliate_code(store, user.uid, body.code)


@router.get("/affiliates", response_model=List[AffiliateCode], response_model_by_alias=True)
async def list_affiliate_codes(user: CurrentUser = Depends(get_current_user), store: DocumentStore = Depends(get_store)):
    return await affiliates.list_affiliate_codes(store, user.uid)
