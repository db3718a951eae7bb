"""Library events.

Provides functionality for:
- Scheduling, rescheduling and cancelling events
- Enrolment with optional capacity
- Event state (finished, today, upcoming, scheduled) and reminders
"""

from .manager import EventManager
from .models import EventEnrollment, LibraryEvent
from .schemas import EventCreate, EventKind, EventResponse, EventState

__all__ = [
    "EventManager",
    "LibraryEvent",
    "EventEnrollment",
    "EventCreate",
    "EventKind",
    "EventResponse",
    "EventState",
]
