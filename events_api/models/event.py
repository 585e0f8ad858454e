from sqlalchemy import Column, Integer, String, DateTime, func

from events_api.database import Base

# Range of the Integer columns on every supported backend (32-bit on Postgres).
INTEGER_MIN = -(2**31)
INTEGER_MAX = 2**31 - 1


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, nullable=False, unique=True, index=True)  # caller-supplied eventID
    event_name = Column(String(200), nullable=False)
    client = Column(String(200), nullable=False, index=True)
    type = Column(String(100), nullable=False)
    venue = Column(String(200), nullable=False)
    month = Column(Integer, nullable=False, index=True)
    day = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    start_time = Column(String(20), nullable=False)  # "14:30" or "02:30 PM"
    pax = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    # Columns a client may change after creation; event_id is immutable.
    MUTABLE_FIELDS = (
        "event_name",
        "client",
        "type",
        "venue",
        "month",
        "day",
        "year",
        "start_time",
        "pax",
    )

    def __repr__(self) -> str:
        return f"<Event event_id={self.event_id} client={self.client!r} {self.year}-{self.month}-{self.day}>"
