import sys
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from events_api.database import Base
from events_api.models import event as _event_model  # noqa: F401 (registers the table)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def session_factory(tmp_path):
    db_file = tmp_path / "events.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_file}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


def make_event(event_id: int, **overrides) -> dict:
    """Request body for an event, using the wire field names."""

    body = {
        "eventID": event_id,
        "eventName": f"Booking {event_id}",
        "client": "Acme Corp",
        "type": "Corporate",
        "venue": "Main Hall",
        "month": 5,
        "day": 1,
        "year": 2025,
        "startTime": "10:00",
        "pax": 50,
    }
    body.update(overrides)
    return body
