# ticketing/services/profiles.py
from typing import Optional

import structlog

from ticketing.models.profile import Profile, ProfileUpdate
from ticketing.store.base import PROFILES, DocumentStore
from ticketing.utils.pricing import utcnow

logger = structlog.get_logger(__name__)


async def get_profile(store: DocumentStore, uid: str) -> Optional[Profile]:
    doc = await store.get(PROFILES, uid)
    return Profile(**{**doc, "uid": uid}) if doc else None


async def upsert_profile(store: DocumentStore, uid: str, data: ProfileUpdate) -> Profile:
    """Merge the fields that were sent into the stored profile."""
    changes = data.model_dump(by_alias=True, exclude_unset=True)
    await store.put(PROFILES, uid, {**changes, "uid": uid, "updatedAt": utcnow()}, merge=True)
    logger.info("profile_saved", uid=uid, fields=sorted(changes))
    return await get_profile(store, uid)
