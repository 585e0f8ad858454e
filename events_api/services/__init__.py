"""Service layer: persistence of event records."""

from .event_store import (
    EventConflict,
    EventNotFound,
    EventServiceError,
    EventStore,
    EventStoreError,
)

__all__ = [
    "EventConflict",
    "EventNotFound",
    "EventServiceError",
    "EventStore",
    "EventStoreError",
]
