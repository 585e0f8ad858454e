import asyncio

import pytest

from events_api.schemas import EventCreate
from events_api.services.event_store import (
    EventConflict,
    EventNotFound,
    EventStore,
    EventStoreError,
)

from conftest import make_event


def _fields(event_id: int, **overrides) -> dict:
    return EventCreate.model_validate(make_event(event_id, **overrides)).model_dump()


@pytest.mark.anyio("asyncio")
async def test_created_event_is_readable_with_timestamps(session_factory):
    async with session_factory() as session:
        store = EventStore(session)
        await store.create_event(_fields(1, venue="Garden"))

    async with session_factory() as session:
        event = await EventStore(session).get_event(1)
        assert event.venue == "Garden"
        assert event.client == "Acme Corp"
        assert event.created_at is not None
        assert event.updated_at is not None


@pytest.mark.anyio("asyncio")
async def test_duplicate_event_id_raises_conflict_and_keeps_one_row(session_factory):
    async with session_factory() as session:
        store = EventStore(session)
        await store.create_event(_fields(7))
        with pytest.raises(EventConflict):
            await store.create_event(_fields(7, client="Someone Else"))

        events = await store.list_events()
        assert [e.event_id for e in events] == [7]
        assert events[0].client == "Acme Corp"


@pytest.mark.anyio("asyncio")
async def test_list_is_sorted_by_date_then_start_time(session_factory):
    async with session_factory() as session:
        store = EventStore(session)
        await store.create_event(_fields(1, year=2026, month=1, day=10, startTime="09:00"))
        await store.create_event(_fields(2, year=2025, month=5, day=1, startTime="10:00"))
        await store.create_event(_fields(3, year=2025, month=5, day=1, startTime="08:00"))

        assert [e.event_id for e in await store.list_events()] == [3, 2, 1]


@pytest.mark.anyio("asyncio")
async def test_filters_by_month_and_client(session_factory):
    async with session_factory() as session:
        store = EventStore(session)
        await store.create_event(_fields(1, month=3, client="Santos"))
        await store.create_event(_fields(2, month=4, client="Santos"))
        await store.create_event(_fields(3, month=3, client="Reyes"))

        assert [e.event_id for e in await store.list_by_month(3)] == [1, 3]
        assert [e.event_id for e in await store.list_by_client("Santos")] == [1, 2]
        assert await store.list_by_client("santos") == []
        assert await store.list_by_month(12) == []


@pytest.mark.anyio("asyncio")
async def test_patch_changes_only_supplied_fields(session_factory):
    async with session_factory() as session:
        store = EventStore(session)
        await store.create_event(_fields(5))
        updated = await store.patch_event(5, {"venue": "New Hall"})

        assert updated.venue == "New Hall"
        assert updated.event_id == 5
        assert updated.client == "Acme Corp"
        assert (updated.year, updated.month, updated.day) == (2025, 5, 1)
        assert updated.start_time == "10:00"
        assert updated.pax == 50


@pytest.mark.anyio("asyncio")
async def test_patch_rejects_event_id_column(session_factory):
    async with session_factory() as session:
        store = EventStore(session)
        await store.create_event(_fields(5))
        with pytest.raises(EventStoreError):
            await store.patch_event(5, {"event_id": 6})
        assert (await store.get_event(5)).event_id == 5


@pytest.mark.anyio("asyncio")
async def test_replace_overwrites_mutable_fields(session_factory):
    async with session_factory() as session:
        store = EventStore(session)
        await store.create_event(_fields(9))
        replaced = await store.replace_event(
            9, _fields(9, client="Reyes", pax=120, startTime="02:30 PM")
        )

        assert replaced.client == "Reyes"
        assert replaced.pax == 120
        assert replaced.start_time == "02:30 PM"


@pytest.mark.anyio("asyncio")
async def test_missing_event_raises_not_found(session_factory):
    async with session_factory() as session:
        store = EventStore(session)
        with pytest.raises(EventNotFound):
            await store.get_event(404)
        with pytest.raises(EventNotFound):
            await store.patch_event(404, {"venue": "Nowhere"})
        with pytest.raises(EventNotFound):
            await store.replace_event(404, _fields(404))
        with pytest.raises(EventNotFound):
            await store.delete_event(404)


@pytest.mark.anyio("asyncio")
async def test_delete_removes_the_record(session_factory):
    async with session_factory() as session:
        store = EventStore(session)
        await store.create_event(_fields(11))
        await store.delete_event(11)

        with pytest.raises(EventNotFound):
            await store.get_event(11)
        with pytest.raises(EventNotFound):
            await store.delete_event(11)


class _SlowSession:
    async def execute(self, stmt):  # noqa: ARG002 - statement is irrelevant here
        await asyncio.sleep(1)


@pytest.mark.anyio("asyncio")
async def test_slow_store_call_times_out():
    store = EventStore(_SlowSession(), timeout=0.01)
    with pytest.raises(EventStoreError, match="timed out"):
        await store.list_events()


@pytest.mark.anyio("asyncio")
async def test_ids_beyond_the_column_range_are_not_found(session_factory):
    async with session_factory() as session:
        store = EventStore(session)
        with pytest.raises(EventNotFound):
            await store.get_event(2**70)
        with pytest.raises(EventNotFound):
            await store.delete_event(2**70)
        assert await store.list_by_month(2**70) == []


@pytest.mark.anyio("asyncio")
async def test_driver_overflow_becomes_store_error(session_factory):
    fields = _fields(12)
    fields["pax"] = 2**70
    async with session_factory() as session:
        store = EventStore(session)
        with pytest.raises(EventStoreError):
            await store.create_event(fields)
        assert await store.list_events() == []
