"""SQLAlchemy models for library events.

Tables:
- events: Scheduled events with optional capacity
- event_enrollments: Members enrolled in an event, in enrolment order
"""

import math
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.models import Base, from_iso, generate_uuid, timestamp, to_iso, utcnow
from ..errors import AlreadyEnrolledError, EventFullError, InvalidArgumentError
from .schemas import EventState

UPCOMING_DAYS = 3

_SECONDS_PER_DAY = 24 * 60 * 60


class LibraryEvent(Base):
    """Event model - a book club, talk, workshop or similar."""

    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    kind: Mapped[str] = mapped_column(String(20), nullable=False, default="other")
    starts_at: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    location: Mapped[Optional[str]] = mapped_column(String(300))
    # None means unlimited
    capacity: Mapped[Optional[int]] = mapped_column(Integer)

    created_at: Mapped[str] = mapped_column(String(32), default=timestamp)
    updated_at: Mapped[str] = mapped_column(String(32), default=timestamp, onupdate=timestamp)

    enrollments: Mapped[list["EventEnrollment"]] = relationship(
        "EventEnrollment",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventEnrollment.id",
    )

    def __repr__(self) -> str:
        return f"<LibraryEvent(id={self.id}, title='{self.title}', starts_at={self.starts_at})>"

    @property
    def starts(self) -> datetime:
        return from_iso(self.starts_at)

    # -------------------------------------------------------------------------
    # Participants
    # -------------------------------------------------------------------------

    def participant_ids(self) -> list[str]:
        return [e.member_id for e in self.enrollments]

    def is_enrolled(self, member_id: str) -> bool:
        return any(e.member_id == member_id for e in self.enrollments)

    def seats_left(self) -> Optional[int]:
        """Free seats, or None when there is no capacity limit."""
        if self.capacity is None:
            return None
        return max(0, self.capacity - len(self.enrollments))

    def has_room(self) -> bool:
        seats = self.seats_left()
        return seats is None or seats > 0

    def enroll(self, member_id: str, now: Optional[datetime] = None) -> None:
        """Add a participant.

        Raises:
            InvalidArgumentError: If the event has already started
            AlreadyEnrolledError: If the member is already enrolled
            EventFullError: If no seats are left
        """
        if self.has_happened(now):
            raise InvalidArgumentError(f"Event {self.id} has already taken place")
        if self.is_enrolled(member_id):
            raise AlreadyEnrolledError(member_id, self.id)
        if not self.has_room():
            raise EventFullError(self.id, self.capacity)
        self.enrollments.append(EventEnrollment(member_id=member_id))

    def withdraw(self, member_id: str) -> bool:
        """Remove a participant.

        Returns:
            True if the member was enrolled
        """
        for enrollment in self.enrollments:
            if enrollment.member_id == member_id:
                self.enrollments.remove(enrollment)
                return True
        return False

    # -------------------------------------------------------------------------
    # Dates and state
    # -------------------------------------------------------------------------

    def has_happened(self, now: Optional[datetime] = None) -> bool:
        return self.starts < (now or utcnow())

    def is_today(self, now: Optional[datetime] = None) -> bool:
        """Same calendar day as now (UTC)."""
        return self.starts.date() == (now or utcnow()).date()

    def is_upcoming(self, now: Optional[datetime] = None, days: int = UPCOMING_DAYS) -> bool:
        """Starts between now and ``days`` from now."""
        now = now or utcnow()
        return now <= self.starts <= now + timedelta(days=days)

    def days_until(self, now: Optional[datetime] = None) -> int:
        """Days until the start, rounded up (negative once past)."""
        remaining = (self.starts - (now or utcnow())).total_seconds()
        return math.ceil(remaining / _SECONDS_PER_DAY)

    def state(self, now: Optional[datetime] = None, days: int = UPCOMING_DAYS) -> EventState:
        now = now or utcnow()
        if self.has_happened(now):
            return EventState.FINISHED
        if self.is_today(now):
            return EventState.TODAY
        if self.is_upcoming(now, days):
            return EventState.UPCOMING
        return EventState.SCHEDULED

    def reschedule(self, new_start: datetime, now: Optional[datetime] = None) -> None:
        """Move the event.

        Raises:
            InvalidArgumentError: If the new start is not in the future
        """
        if new_start <= (now or utcnow()):
            raise InvalidArgumentError("Cannot reschedule an event into the past")
        self.starts_at = to_iso(new_start)


class EventEnrollment(Base):
    """A member enrolled in an event."""

    __tablename__ = "event_enrollments"
    __table_args__ = (UniqueConstraint("event_id", "member_id", name="uq_enrollment_event_member"),)

    # Autoincrementing so enrolment order is total
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    member_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    enrolled_at: Mapped[str] = mapped_column(String(32), default=timestamp)

    event: Mapped["LibraryEvent"] = relationship("LibraryEvent", back_populates="enrollments")

    def __repr__(self) -> str:
        return f"<EventEnrollment(event_id={self.event_id}, member_id={self.member_id})>"
