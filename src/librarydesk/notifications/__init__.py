"""Member notifications.

The circulation desk emits events through a ``NotificationSink``;
``NotificationManager`` stores them in the database with per-member
bounded retention, ``MemoryNotificationSink`` keeps them in process.
"""

from .manager import NotificationManager
from .models import Notification
from .schemas import (
    NotificationCategory,
    NotificationEvent,
    NotificationPriority,
    NotificationResponse,
)
from .sink import MemoryNotificationSink, NotificationSink

__all__ = [
    "NotificationManager",
    "Notification",
    "NotificationCategory",
    "NotificationEvent",
    "NotificationPriority",
    "NotificationResponse",
    "NotificationSink",
    "MemoryNotificationSink",
]
