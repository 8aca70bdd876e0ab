# ticketing/routes/events.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from ticketing.dependencies import get_store
from ticketing.models.event import PUBLISHED, Event
from ticketing.services import events
from ticketing.store.base import DocumentStore

router = APIRouter()


@router.get("", response_model=List[Event], response_model_by_alias=True)
async def list_events(store: DocumentStore = Depends(get_store)):
    return await events.list_published_events(store)


@router.get("/{event_id}", response_model=Event, response_model_by_alias=True)
async def get_event(event_id: str, store: DocumentStore = Depends(get_store)):
    event = await events.get_event(store, event_id)
    if event is None or event.status != PUBLISHED:
        raise HTTPException(status_code=404, detail="Event not found")
    return event
