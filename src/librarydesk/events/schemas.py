"""Pydantic schemas for library events."""

from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, Field, field_validator

if TYPE_CHECKING:
    from .models import LibraryEvent


class EventKind(str, Enum):
    """Kind of library event."""

    BOOK_CLUB = "book_club"
    AUTHOR_TALK = "author_talk"
    WORKSHOP = "workshop"
    BOOK_LAUNCH = "book_launch"
    OTHER = "other"


class EventState(str, Enum):
    """Where an event stands relative to now."""

    FINISHED = "finished"
    TODAY = "today"
    UPCOMING = "upcoming"
    SCHEDULED = "scheduled"


class EventCreate(BaseModel):
    """Schema for scheduling an event. Naive start times are taken as UTC."""

    id: Optional[str] = Field(None, min_length=1, max_length=36)
    title: str = Field(..., min_length=1, max_length=300)
    description: str = ""
    kind: EventKind = EventKind.OTHER
    starts_at: datetime
    location: Optional[str] = Field(None, max_length=300)
    capacity: Optional[int] = Field(None, gt=0)

    @field_validator("starts_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class EventResponse(BaseModel):
    """Schema for event responses."""

    id: str
    title: str
    description: str
    kind: EventKind
    starts_at: datetime
    location: Optional[str] = None
    capacity: Optional[int] = None
    participants: int
    seats_left: Optional[int] = None
    state: EventState
    days_until: int

    @classmethod
    def from_event(
        cls,
        event: "LibraryEvent",
        now: datetime,
        upcoming_days: int,
    ) -> "EventResponse":
        return cls(
            id=event.id,
            title=event.title,
            description=event.description or "",
            kind=EventKind(event.kind),
            starts_at=event.starts,
            location=event.location,
            capacity=event.capacity,
            participants=len(event.enrollments),
            seats_left=event.seats_left(),
            state=event.state(now, upcoming_days),
            days_until=event.days_until(now),
        )
