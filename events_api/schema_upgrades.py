"""Idempotent schema upgrades applied after metadata.create_all()."""
from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncConnection

logger = logging.getLogger(__name__)

# Columns introduced after the first deployments of the events table.
_LATE_EVENT_COLUMNS = ("event_name", "venue")


async def ensure_event_columns(conn: AsyncConnection) -> None:
    """Add event_name/venue to events tables created before those fields existed."""

    for column in _LATE_EVENT_COLUMNS:
        if conn.dialect.name == "sqlite":
            ddl = f"ALTER TABLE events ADD COLUMN {column} VARCHAR(200) NOT NULL DEFAULT ''"
        else:
            ddl = (
                f"ALTER TABLE events ADD COLUMN IF NOT EXISTS {column} "
                "VARCHAR(200) NOT NULL DEFAULT ''"
            )

        try:
            await conn.execute(text(ddl))
        except DBAPIError as ddl_error:  # column may already exist
            message = str(getattr(ddl_error, "orig", ddl_error)).lower()
            if not any(
                phrase in message
                for phrase in (
                    "duplicate column name",
                    "already exists",
                    f'column "{column}" of relation "events" already exists',
                )
            ):
                raise
        else:
            logger.debug("Ensured column events.%s", column)


async def apply_schema_upgrades(conn: AsyncConnection) -> None:
    await ensure_event_columns(conn)
