"""CRUD endpoints for event records, mounted under /api/v1/events."""

import logging
import os
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from events_api.database import get_db
from events_api.schemas import (
    EventCreate,
    EventEnvelope,
    EventListEnvelope,
    EventPatch,
    EventRead,
    EventReplace,
    MessageResponse,
)
from events_api.services.event_store import (
    EventConflict,
    EventNotFound,
    EventStore,
    EventStoreError,
)

router = APIRouter(prefix="/api/v1/events", tags=["Events"])
logger = logging.getLogger(__name__)

EVENT_NOT_FOUND = "Event not found"
REPLACE_FIELDS_REQUIRED = (
    "Update must have eventID, eventName, client, type, venue, date fields, time, and pax"
)
SCHEDULE_REQUIRED = "Must include date (month, day, year) or startTime to update"


def get_event_store(db: AsyncSession = Depends(get_db)) -> EventStore:
    return EventStore(db)


def patch_requires_schedule() -> bool:
    """Strict PATCH mode: only date/time changes are accepted."""
    return os.getenv("EVENTS_PATCH_REQUIRE_SCHEDULE", "0").lower() in {"1", "true", "yes", "on"}


def _event_envelope(message: str, event) -> EventEnvelope:
    return EventEnvelope(message=message, event=EventRead.model_validate(event))


def _list_envelope(message: str, events) -> EventListEnvelope:
    return EventListEnvelope(
        message=message, events=[EventRead.model_validate(e) for e in events]
    )


# ----- Reads: unexpected store failures are 500 -----

@router.get("", response_model=EventListEnvelope)
@router.get("/", response_model=EventListEnvelope, include_in_schema=False)
async def list_events(store: EventStore = Depends(get_event_store)) -> EventListEnvelope:
    try:
        events = await store.list_events()
    except EventStoreError as exc:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))
    return _list_envelope("Events retrieved successfully", events)


@router.get("/month/{month}", response_model=EventListEnvelope)
async def list_events_by_month(
    month: int, store: EventStore = Depends(get_event_store)
) -> EventListEnvelope:
    try:
        events = await store.list_by_month(month)
    except EventStoreError as exc:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))
    if not events:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "No events for this month")
    return _list_envelope("Specific month events retrieved successfully", events)


@router.get("/client/{client}", response_model=EventListEnvelope)
async def list_events_by_client(
    client: str, store: EventStore = Depends(get_event_store)
) -> EventListEnvelope:
    try:
        events = await store.list_by_client(client)
    except EventStoreError as exc:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))
    if not events:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "No events listed for this client")
    return _list_envelope("Client events retrieved successfully", events)


@router.get("/{event_id}", response_model=EventEnvelope)
async def get_event(event_id: int, store: EventStore = Depends(get_event_store)) -> EventEnvelope:
    try:
        event = await store.get_event(event_id)
    except EventNotFound:
        raise HTTPException(status.HTTP_404_NOT_FOUND, EVENT_NOT_FOUND)
    except EventStoreError as exc:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))
    return _event_envelope("Event retrieved successfully", event)


# ----- Writes: unexpected store failures are reported as 400 -----

@router.post("", response_model=EventEnvelope, status_code=status.HTTP_201_CREATED)
@router.post(
    "/", response_model=EventEnvelope, status_code=status.HTTP_201_CREATED, include_in_schema=False
)
async def create_event(
    payload: EventCreate, store: EventStore = Depends(get_event_store)
) -> EventEnvelope:
    try:
        event = await store.create_event(payload.model_dump())
    except EventConflict:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Event ID already exists")
    except EventStoreError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(exc))
    return _event_envelope("Event added successfully", event)


@router.put("/{event_id}", response_model=EventEnvelope)
async def replace_event(
    event_id: int,
    body: Dict[str, Any] = Body(...),
    store: EventStore = Depends(get_event_store),
) -> EventEnvelope:
    try:
        payload = EventReplace.model_validate(body)
    except ValidationError:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, REPLACE_FIELDS_REQUIRED)

    if payload.event_id != event_id:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "eventID in body must match URL ID")

    try:
        event = await store.replace_event(event_id, payload.model_dump())
    except EventNotFound:
        raise HTTPException(status.HTTP_404_NOT_FOUND, EVENT_NOT_FOUND)
    except EventStoreError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(exc))
    return _event_envelope("Event updated successfully", event)


@router.patch("/{event_id}", response_model=EventEnvelope)
async def patch_event(
    event_id: int,
    payload: EventPatch,
    store: EventStore = Depends(get_event_store),
) -> EventEnvelope:
    if payload.event_id is not None and payload.event_id != event_id:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "eventID cannot be changed")

    strict = patch_requires_schedule()
    if strict and not payload.has_schedule():
        raise HTTPException(status.HTTP_400_BAD_REQUEST, SCHEDULE_REQUIRED)

    try:
        event = await store.patch_event(event_id, payload.changes())
    except EventNotFound:
        raise HTTPException(status.HTTP_404_NOT_FOUND, EVENT_NOT_FOUND)
    except EventStoreError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(exc))

    message = "Event schedule successfully updated" if strict else "Event successfully updated"
    return _event_envelope(message, event)


@router.delete("/{event_id}", response_model=MessageResponse)
async def delete_event(
    event_id: int, store: EventStore = Depends(get_event_store)
) -> MessageResponse:
    try:
        await store.delete_event(event_id)
    except EventNotFound:
        raise HTTPException(status.HTTP_404_NOT_FOUND, EVENT_NOT_FOUND)
    except EventStoreError as exc:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))
    return MessageResponse(message="Event deleted successfully")
