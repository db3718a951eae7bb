"""Event manager for scheduling library events and enrolling members."""

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import select

from ..config import Config, get_config
from ..db.models import to_iso, utcnow
from ..db.sqlite import Database, get_db
from ..errors import DuplicateError, InvalidArgumentError, NotFoundError
from ..members.models import Member
from ..notifications.manager import NotificationManager
from ..notifications.schemas import (
    NotificationCategory,
    NotificationEvent,
    NotificationPriority,
)
from ..notifications.sink import NotificationSink
from .models import EventEnrollment, LibraryEvent
from .schemas import EventCreate, EventResponse

_log = logging.getLogger(__name__)


class EventManager:
    """Manages library events and their participants.

    Like the circulation desk, notifications are sent only after the
    change they describe has been committed.
    """

    def __init__(
        self,
        db: Optional[Database] = None,
        notifier: Optional[NotificationSink] = None,
        config: Optional[Config] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize event manager.

        Args:
            db: Database instance
            notifier: Where notification events go (default: stored in db)
            config: Settings (default: loaded from environment)
            clock: Returns the current UTC time (default: system clock)
        """
        self.db = db if db is not None else get_db()
        self.config = config if config is not None else get_config()
        if notifier is None:
            notifier = NotificationManager(self.db, capacity=self.config.notification_capacity)
        self.notifier = notifier
        self.clock = clock if clock is not None else utcnow

    def _get_event(self, session, event_id: str) -> LibraryEvent:
        event = session.get(LibraryEvent, event_id)
        if event is None:
            raise NotFoundError("event", event_id)
        return event

    def _response(self, event: LibraryEvent, now: datetime) -> EventResponse:
        return EventResponse.from_event(event, now, self.config.event_reminder_days)

    def _dispatch(self, events: list[NotificationEvent]) -> None:
        for event in events:
            self.notifier.notify(event.member_id, event.category, event.message, event.priority)

    # -------------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------------

    def create_event(self, data: EventCreate) -> EventResponse:
        """Schedule an event.

        Args:
            data: Event creation data

        Returns:
            The created event

        Raises:
            DuplicateError: If the event id is already taken
            InvalidArgumentError: If the start time is not in the future
        """
        now = self.clock()
        if data.starts_at <= now:
            raise InvalidArgumentError("Events must start in the future")

        with self.db.get_session() as session:
            if data.id and session.get(LibraryEvent, data.id) is not None:
                raise DuplicateError(f"An event with id {data.id} already exists")

            event = LibraryEvent(
                title=data.title,
                description=data.description,
                kind=data.kind.value,
                starts_at=to_iso(data.starts_at),
                location=data.location,
                capacity=data.capacity,
            )
            if data.id:
                event.id = data.id
            session.add(event)
            session.flush()
            response = self._response(event, now)
            session.commit()

        _log.info("Scheduled event %s (%s) at %s", response.id, response.title, response.starts_at)
        return response

    def get_event(self, event_id: str) -> Optional[EventResponse]:
        now = self.clock()
        with self.db.get_session() as session:
            event = session.get(LibraryEvent, event_id)
            if event is None:
                return None
            return self._response(event, now)

    def list_events(self, include_finished: bool = False) -> list[EventResponse]:
        """Events ordered by start time, optionally including past ones."""
        now = self.clock()
        with self.db.get_session() as session:
            stmt = select(LibraryEvent).order_by(LibraryEvent.starts_at)
            if not include_finished:
                stmt = stmt.where(LibraryEvent.starts_at >= to_iso(now))
            events = session.execute(stmt).scalars().all()
            return [self._response(event, now) for event in events]

    def upcoming_events(self, days: Optional[int] = None) -> list[EventResponse]:
        """Events starting within ``days`` (default: configured reminder days)."""
        window = self.config.event_reminder_days if days is None else days
        now = self.clock()
        with self.db.get_session() as session:
            events = session.execute(
                select(LibraryEvent).order_by(LibraryEvent.starts_at)
            ).scalars().all()
            return [self._response(e, now) for e in events if e.is_upcoming(now, window)]

    def events_for_member(self, member_id: str) -> list[EventResponse]:
        """Events a member is enrolled in, ordered by start time."""
        now = self.clock()
        with self.db.get_session() as session:
            events = session.execute(
                select(LibraryEvent)
                .join(EventEnrollment)
                .where(EventEnrollment.member_id == member_id)
                .order_by(LibraryEvent.starts_at)
            ).scalars().all()
            return [self._response(event, now) for event in events]

    def reschedule(self, event_id: str, new_start: datetime) -> EventResponse:
        """Move an event and tell its participants.

        Raises:
            NotFoundError: Unknown event
            InvalidArgumentError: If the new start is not in the future
        """
        now = self.clock()
        with self.db.get_session() as session:
            event = self._get_event(session, event_id)
            event.reschedule(new_start, now)
            participants = event.participant_ids()
            session.flush()
            response = self._response(event, now)
            session.commit()

        _log.info("Rescheduled event %s to %s", event_id, response.starts_at)
        self._dispatch([
            NotificationEvent(
                member_id=member_id,
                category=NotificationCategory.EVENT,
                message=f'"{response.title}" moved to {response.starts_at:%Y-%m-%d %H:%M} UTC.',
                priority=NotificationPriority.MEDIUM,
            )
            for member_id in participants
        ])
        return response

    def cancel_event(self, event_id: str) -> int:
        """Cancel an event and tell its participants.

        Returns:
            Number of participants notified

        Raises:
            NotFoundError: Unknown event
        """
        with self.db.get_session() as session:
            event = self._get_event(session, event_id)
            title = event.title
            participants = event.participant_ids()
            session.delete(event)
            session.commit()

        _log.info("Cancelled event %s, %d participant(s)", event_id, len(participants))
        self._dispatch([
            NotificationEvent(
                member_id=member_id,
                category=NotificationCategory.EVENT_CANCELLED,
                message=f'"{title}" has been cancelled.',
                priority=NotificationPriority.HIGH,
            )
            for member_id in participants
        ])
        return len(participants)

    # -------------------------------------------------------------------------
    # Participants
    # -------------------------------------------------------------------------

    def enroll(self, member_id: str, event_id: str) -> EventResponse:
        """Enrol a member in an event.

        Raises:
            NotFoundError: Unknown member or event
            InvalidArgumentError: The event has already taken place
            AlreadyEnrolledError: The member is already enrolled
            EventFullError: No seats left
        """
        now = self.clock()
        with self.db.get_session() as session:
            if session.get(Member, member_id) is None:
                raise NotFoundError("member", member_id)
            event = self._get_event(session, event_id)
            event.enroll(member_id, now)
            session.flush()
            response = self._response(event, now)
            session.commit()

        _log.info("Member %s enrolled in event %s", member_id, event_id)
        self._dispatch([
            NotificationEvent(
                member_id=member_id,
                category=NotificationCategory.EVENT,
                message=(
                    f'You are enrolled in "{response.title}" on '
                    f"{response.starts_at:%Y-%m-%d %H:%M} UTC."
                ),
                priority=NotificationPriority.LOW,
            )
        ])
        return response

    def withdraw(self, member_id: str, event_id: str) -> bool:
        """Take a member off an event's participant list.

        Returns:
            True if the member was enrolled

        Raises:
            NotFoundError: Unknown event
        """
        with self.db.get_session() as session:
            event = self._get_event(session, event_id)
            removed = event.withdraw(member_id)
            session.commit()

        if removed:
            _log.info("Member %s withdrew from event %s", member_id, event_id)
        return removed

    def participants(self, event_id: str) -> list[str]:
        """Member ids enrolled in an event, in enrolment order.

        Raises:
            NotFoundError: Unknown event
        """
        with self.db.get_session() as session:
            return self._get_event(session, event_id).participant_ids()

    def send_event_reminders(self, days: Optional[int] = None) -> int:
        """Remind participants of events starting within ``days``.

        Returns:
            Number of reminders sent
        """
        window = self.config.event_reminder_days if days is None else days
        now = self.clock()
        events = []

        with self.db.get_session() as session:
            upcoming = session.execute(
                select(LibraryEvent).order_by(LibraryEvent.starts_at)
            ).scalars().all()
            for event in upcoming:
                if not event.is_upcoming(now, window):
                    continue
                days_left = event.days_until(now)
                when = "today" if event.is_today(now) else f"in {days_left} day(s)"
                for member_id in event.participant_ids():
                    events.append(
                        NotificationEvent(
                            member_id=member_id,
                            category=NotificationCategory.EVENT_UPCOMING,
                            message=f'"{event.title}" starts {when}, {event.starts:%Y-%m-%d %H:%M} UTC.',
                            priority=NotificationPriority.MEDIUM,
                        )
                    )

        self._dispatch(events)
        _log.info("Sent %d event reminder(s)", len(events))
        return len(events)
