# ticketing/services/access.py
from typing import List, Optional

import structlog

from ticketing.exceptions import AccessInviteNotFound, NotAuthorized
from ticketing.models.access import ACTIVE, MANAGER, PENDING, SCANNER, AccessGrant
from ticketing.store.base import ACCESS, ACCESS_INDEX, DocumentStore, new_id
from ticketing.utils.pricing import utcnow

logger = structlog.get_logger(__name__)


def access_index_id(seller_id: str, member_uid: str) -> str:
    return f"{seller_id}_{member_uid}"


async def can_scan_for(reader, seller_id: str, scanner_id: str) -> bool:
    """``reader`` is a store or a transaction; both expose ``get``."""
    entry = await reader.get(ACCESS_INDEX, access_index_id(seller_id, scanner_id))
    return entry is not None and entry.get("role") in (SCANNER, MANAGER)


async def invite_access(
    store: DocumentStore,
    seller_id: str,
    seller_email: Optional[str],
    member_email: str,
    role: str = SCANNER,
) -> AccessGrant:
    grant = AccessGrant(
        id=new_id(),
        seller_id=seller_id,
        seller_email=seller_email,
        member_email=member_email.strip().lower(),
        role=role,
        status=PENDING,
        created_at=utcnow(),
    )
    await store.put(ACCESS, grant.id, grant.to_document())
    logger.info("access_invited", invite_id=grant.id, seller_id=seller_id, role=role)
    return grant


async def list_access_for_seller(store: DocumentStore, seller_id: str) -> List[AccessGrant]:
    docs = await store.find(ACCESS, {"sellerId": seller_id}, order_by=("createdAt", True))
    return [AccessGrant(**doc) for doc in docs]


async def list_invites_for_member(store: DocumentStore, member_email: str) -> List[AccessGrant]:
    docs = await store.find(ACCESS, {"memberEmail": member_email.strip().lower()}, order_by=("createdAt", True))
    return [AccessGrant(**doc) for doc in docs]


async def accept_invite(store: DocumentStore, invite_id: str, member_uid: str, member_email: Optional[str]) -> AccessGrant:
    async def accept(tx):
        doc = await tx.get(ACCESS, invite_id)
        if doc is None:
            raise AccessInviteNotFound()
        grant = AccessGrant(**doc)
        if not member_email or grant.member_email != member_email.strip().lower():
            raise NotAuthorized("This invite was sent to a different email.")

        now = utcnow()
        grant = grant.model_copy(update={"member_uid": member_uid, "status": ACTIVE, "accepted_at": now})
        tx.set(ACCESS, invite_id, grant.to_document())
        tx.set(
            ACCESS_INDEX,
            access_index_id(grant.seller_id, member_uid),
            {"sellerId": grant.seller_id, "memberUid": member_uid, "role": grant.role, "createdAt": now},
        )
        return grant

    grant = await store.transact(accept)
    logger.info("access_accepted", invite_id=invite_id, seller_id=grant.seller_id, member_uid=member_uid)
    return grant


async def remove_access(store: DocumentStore, invite_id: str, seller_id: str) -> None:
    async def remove(tx):
        doc = await tx.get(ACCESS, invite_id)
        if doc is None:
            raise AccessInviteNotFound()
        if doc.get("sellerId") != seller_id:
            raise NotAuthorized("Not your invite.")
        if doc.get("memberUid"):
            tx.delete(ACCESS_INDEX, access_index_id(seller_id, doc["memberUid"]))
        tx.delete(ACCESS, invite_id)

    await store.transact(remove)
    logger.info("access_removed", invite_id=invite_id, seller_id=seller_id)
