import asyncio

import events_api.database as database
from events_api.services.event_store import EventConflict, EventStore

SAMPLE_EVENTS = [
    {
        "event_id": 1001,
        "event_name": "Santos Wedding Reception",
        "client": "Santos Family",
        "type": "Wedding",
        "venue": "Grand Ballroom",
        "month": 2,
        "day": 14,
        "year": 2026,
        "start_time": "05:00 PM",
        "pax": 150,
    },
    {
        "event_id": 1002,
        "event_name": "Quarterly Town Hall",
        "client": "Acme Corp",
        "type": "Corporate",
        "venue": "Function Room B",
        "month": 3,
        "day": 2,
        "year": 2026,
        "start_time": "09:30",
        "pax": 80,
    },
    {
        "event_id": 1003,
        "event_name": "Lia's 7th Birthday",
        "client": "Reyes Family",
        "type": "Birthday",
        "venue": "Garden Pavilion",
        "month": 3,
        "day": 2,
        "year": 2026,
        "start_time": "02:00 PM",
        "pax": 40,
    },
]


async def main() -> None:
    """Create the events table and insert a few sample bookings."""

    await database.init_models()
    created = 0
    async with database.SessionLocal() as session:
        store = EventStore(session)
        for fields in SAMPLE_EVENTS:
            try:
                await store.create_event(fields)
            except EventConflict:
                continue
            created += 1
    await database.dispose_engine()
    print(f"Seeded {created} sample events.")


if __name__ == "__main__":
    asyncio.run(main())
