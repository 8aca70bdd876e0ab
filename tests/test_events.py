# tests/test_events.py
import pydantic
import pytest

from ticketing.exceptions import EventNotFound, NotAuthorized
from ticketing.models.event import DRAFT, EventUpdate
from ticketing.services.events import delete_event, get_event, list_published_events, update_event
from ticketing.store.base import EVENTS


async def test_owner_updates_only_sent_fields(store, event):
    updated = await update_event(store, event.id, event.seller_id, EventUpdate(title="Afro Nation Lagos 2026"))

    assert updated.title == "Afro Nation Lagos 2026"
    assert updated.venue == "Eko Atlantic"
    assert updated.updated_at is not None
    assert [tt.id for tt in updated.ticket_types] == [tt.id for tt in event.ticket_types]
    assert (await get_event(store, event.id)).title == "Afro Nation Lagos 2026"


async def test_unpublishing_hides_event(store, event):
    await update_event(store, event.id, event.seller_id, EventUpdate(status=DRAFT))
    assert await list_published_events(store) == []


async def test_only_the_seller_edits_or_deletes(store, event):
    with pytest.raises(NotAuthorized):
        await update_event(store, event.id, "seller_2", EventUpdate(title="Hijacked"))
    with pytest.raises(NotAuthorized):
        await delete_event(store, event.id, "seller_2")
    assert (await store.get(EVENTS, event.id))["title"] == "Afro Nation Lagos"


async def test_delete_event(store, event):
    await delete_event(store, event.id, event.seller_id)

    assert await store.get(EVENTS, event.id) is None
    with pytest.raises(EventNotFound):
        await delete_event(store, event.id, event.seller_id)
    with pytest.raises(EventNotFound):
        await update_event(store, event.id, event.seller_id, EventUpdate(title="Back"))


def test_event_update_validates_status_and_category():
    with pytest.raises(pydantic.ValidationError):
        EventUpdate(status="live")
    with pytest.raises(pydantic.ValidationError):
        EventUpdate(category="opera")
    assert EventUpdate(category="comedy").category == "comedy"
