# events_api/schemas.py
# ------------------------------------------------------------
# Pydantic v2 schemas for event records and response envelopes
# ------------------------------------------------------------
from datetime import datetime
import re
from typing import Annotated, Optional, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from events_api.models.event import INTEGER_MAX, INTEGER_MIN


_CONTROL_CHAR_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


def _sanitize_single_line_text(value: str | None) -> str | None:
    if value is None:
        return value
    if not isinstance(value, str):
        raise ValueError("Expected string input")
    cleaned = _CONTROL_CHAR_RE.sub("", value).strip()
    if not cleaned:
        raise ValueError("Value cannot be empty")
    if any(ch in {"\n", "\r"} for ch in cleaned):
        raise ValueError("Value must be a single line of text")
    return cleaned


# Integers must fit the store's Integer columns.
StoreInt = Annotated[int, Field(ge=INTEGER_MIN, le=INTEGER_MAX)]

_TEXT_FIELDS = ("event_name", "client", "type", "venue", "start_time")


# ============================================================
# Requests
# ============================================================

class EventFields(BaseModel):
    """Every client-supplied field of an event, all required."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    event_id: StoreInt = Field(alias="eventID")
    event_name: str = Field(alias="eventName", max_length=200)
    client: str = Field(max_length=200)
    type: str = Field(max_length=100)
    venue: str = Field(max_length=200)
    month: StoreInt
    day: StoreInt
    year: StoreInt
    start_time: str = Field(alias="startTime", max_length=20)
    pax: StoreInt

    @field_validator(*_TEXT_FIELDS, mode="before")
    @classmethod
    def _clean_text(cls, value: str) -> str:
        return _sanitize_single_line_text(value)


class EventCreate(EventFields):
    pass


class EventReplace(EventFields):
    """Body of a full update; eventID must match the id in the URL."""


class EventPatch(BaseModel):
    """Partial update. Only the fields present in the body are applied."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="ignore")

    # Accepted only so it can be compared with the id in the URL; never written.
    event_id: Optional[StoreInt] = Field(default=None, alias="eventID")
    event_name: Optional[str] = Field(default=None, alias="eventName", max_length=200)
    client: Optional[str] = Field(default=None, max_length=200)
    type: Optional[str] = Field(default=None, max_length=100)
    venue: Optional[str] = Field(default=None, max_length=200)
    month: Optional[StoreInt] = None
    day: Optional[StoreInt] = None
    year: Optional[StoreInt] = None
    start_time: Optional[str] = Field(default=None, alias="startTime", max_length=20)
    pax: Optional[StoreInt] = None

    @field_validator(*_TEXT_FIELDS, mode="before")
    @classmethod
    def _clean_text(cls, value: str | None) -> str | None:
        return _sanitize_single_line_text(value)

    def changes(self) -> dict:
        """Supplied fields keyed by column name; explicit nulls are dropped."""
        return self.model_dump(exclude_unset=True, exclude_none=True, exclude={"event_id"})

    def has_schedule(self) -> bool:
        """True when a full date (month, day, year) or a startTime is supplied."""
        date_given = bool(self.month and self.day and self.year)
        return date_given or bool(self.start_time)


# ============================================================
# Responses
# ============================================================

class EventRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    event_id: int = Field(alias="eventID")
    event_name: str = Field(alias="eventName")
    client: str
    type: str
    venue: str
    month: int
    day: int
    year: int
    start_time: str = Field(alias="startTime")
    pax: int
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")


class MessageResponse(BaseModel):
    message: str


class EventEnvelope(MessageResponse):
    event: EventRead


class EventListEnvelope(MessageResponse):
    events: List[EventRead]
