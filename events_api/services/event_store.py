"""Persistence for event records.

``EventStore`` is the only code that talks to the database. It wraps one
``AsyncSession`` per request and turns driver failures into the small
error hierarchy below, so the HTTP layer never sees SQLAlchemy exceptions.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Awaitable, List, Mapping, Optional, TypeVar

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from events_api.models.event import INTEGER_MAX, INTEGER_MIN, Event

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

# Ascending by calendar date, then start time; insertion order breaks ties.
EVENT_ORDER = (Event.year, Event.month, Event.day, Event.start_time, Event.id)


class EventServiceError(Exception):
    """Base class for store failures surfaced to the HTTP layer."""


class EventNotFound(EventServiceError):
    def __init__(self, event_id: int) -> None:
        super().__init__(f"Event {event_id} not found")
        self.event_id = event_id


class EventConflict(EventServiceError):
    def __init__(self, event_id: int) -> None:
        super().__init__(f"Event ID {event_id} already exists")
        self.event_id = event_id


class EventStoreError(EventServiceError):
    """Unclassified failure from the database or a timed-out call."""


def _default_timeout() -> Optional[float]:
    raw = os.getenv("EVENTS_STORE_TIMEOUT_SECONDS", "10")
    try:
        value = float(raw)
    except ValueError:
        _LOGGER.warning("Ignoring invalid EVENTS_STORE_TIMEOUT_SECONDS=%r", raw)
        value = 10.0
    return value if value > 0 else None


def _storable(value: int) -> bool:
    """An integer outside the column range cannot match any stored row."""
    return INTEGER_MIN <= value <= INTEGER_MAX


def _is_unique_violation(error: IntegrityError) -> bool:
    message = str(getattr(error, "orig", error)).lower()
    return any(phrase in message for phrase in ("unique", "duplicate key"))


class EventStore:
    """Event CRUD over a single session."""

    def __init__(self, session: AsyncSession, *, timeout: Optional[float] = None) -> None:
        self.session = session
        if timeout is None:
            timeout = _default_timeout()
        self.timeout = timeout if timeout and timeout > 0 else None

    async def _run(self, awaitable: Awaitable[T]) -> T:
        try:
            if self.timeout is None:
                return await awaitable
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise EventStoreError("Database request timed out") from exc
        except (SQLAlchemyError, OverflowError) as exc:
            _LOGGER.error("Database error: %s", exc)
            raise EventStoreError("Database request failed") from exc

    async def _rollback(self) -> None:
        try:
            await self.session.rollback()
        except SQLAlchemyError:
            _LOGGER.warning("Rollback failed", exc_info=True)

    # ----- reads -----

    async def _select(self, *criteria) -> List[Event]:
        stmt = select(Event).where(*criteria).order_by(*EVENT_ORDER)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def _find_one(self, event_id: int) -> Optional[Event]:
        if not _storable(event_id):
            return None
        result = await self.session.execute(select(Event).where(Event.event_id == event_id))
        return result.scalar_one_or_none()

    async def list_events(self) -> List[Event]:
        return await self._run(self._select())

    async def list_by_month(self, month: int) -> List[Event]:
        if not _storable(month):
            return []
        return await self._run(self._select(Event.month == month))

    async def list_by_client(self, client: str) -> List[Event]:
        return await self._run(self._select(Event.client == client))

    async def get_event(self, event_id: int) -> Event:
        event = await self._run(self._find_one(event_id))
        if event is None:
            raise EventNotFound(event_id)
        return event

    # ----- writes -----

    async def create_event(self, fields: Mapping[str, Any]) -> Event:
        event = Event(**fields)

        async def _insert() -> Event:
            self.session.add(event)
            await self.session.commit()
            await self.session.refresh(event)
            return event

        try:
            created = await self._run(_insert())
        except EventStoreError as exc:
            await self._rollback()
            cause = exc.__cause__
            if isinstance(cause, IntegrityError) and _is_unique_violation(cause):
                raise EventConflict(fields["event_id"]) from cause
            raise
        _LOGGER.info("Created event %s for client %r", created.event_id, created.client)
        return created

    async def _update(self, event_id: int, values: Mapping[str, Any]) -> Optional[Event]:
        if not _storable(event_id):
            return None
        if values:
            # event_id is the filter, never a target column.
            stmt = (
                update(Event)
                .where(Event.event_id == event_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            result = await self.session.execute(stmt)
            await self.session.commit()
            if result.rowcount == 0:
                return None
        event = await self._find_one(event_id)
        if event is not None:
            await self.session.refresh(event)
        return event

    async def _write(self, event_id: int, values: Mapping[str, Any]) -> Event:
        unknown = set(values) - set(Event.MUTABLE_FIELDS)
        if unknown:
            raise EventStoreError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        try:
            event = await self._run(self._update(event_id, values))
        except EventStoreError:
            await self._rollback()
            raise
        if event is None:
            raise EventNotFound(event_id)
        _LOGGER.info("Updated event %s (%s)", event_id, ", ".join(sorted(values)) or "no changes")
        return event

    async def replace_event(self, event_id: int, fields: Mapping[str, Any]) -> Event:
        """Overwrite every mutable field of the event matching ``event_id``."""
        values = {key: fields[key] for key in Event.MUTABLE_FIELDS}
        return await self._write(event_id, values)

    async def patch_event(self, event_id: int, changes: Mapping[str, Any]) -> Event:
        """Apply only the supplied fields to the event matching ``event_id``."""
        return await self._write(event_id, dict(changes))

    async def delete_event(self, event_id: int) -> None:
        if not _storable(event_id):
            raise EventNotFound(event_id)

        async def _delete() -> int:
            result = await self.session.execute(
                delete(Event)
                .where(Event.event_id == event_id)
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
            return result.rowcount

        try:
            removed = await self._run(_delete())
        except EventStoreError:
            await self._rollback()
            raise
        if not removed:
            raise EventNotFound(event_id)
        _LOGGER.info("Deleted event %s", event_id)
