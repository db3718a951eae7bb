"""Pydantic schemas for member notifications."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from ..db.models import utcnow


class NotificationCategory(str, Enum):
    """What a notification is about."""

    RESERVATION = "reservation"  # placed or cancelled
    LOAN = "loan"
    FINE = "fine"  # incurred or fully paid
    RENEWAL = "renewal"
    AVAILABILITY = "availability"  # reserved copy handed to the queue head
    OVERDUE = "overdue"
    DUE_SOON = "due_soon"
    NEW_BY_AUTHOR = "new_by_author"  # new copy by an author the member has read
    EVENT = "event"  # enrolled or rescheduled
    EVENT_UPCOMING = "event_upcoming"
    EVENT_CANCELLED = "event_cancelled"


class NotificationPriority(str, Enum):
    """Notification priority."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class NotificationEvent(BaseModel):
    """A notification emitted by the circulation desk."""

    member_id: str
    category: NotificationCategory
    message: str
    priority: NotificationPriority = NotificationPriority.MEDIUM
    created_at: datetime = Field(default_factory=utcnow)


class NotificationResponse(BaseModel):
    """Schema for stored notification responses."""

    id: int
    member_id: str
    category: NotificationCategory
    message: str
    priority: NotificationPriority
    read: bool
    created_at: datetime

    model_config = {"from_attributes": True}
