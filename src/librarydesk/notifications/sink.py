"""Notification sink interface and an in-process implementation.

The circulation manager only emits events through ``notify``; how long
they are kept is up to the sink.
"""

from collections import deque
from typing import Optional, Protocol

from .schemas import NotificationCategory, NotificationEvent, NotificationPriority


class NotificationSink(Protocol):
    """Anything that accepts notification events."""

    def notify(
        self,
        member_id: str,
        category: NotificationCategory,
        message: str,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
    ) -> None: ...


class MemoryNotificationSink:
    """Bounded in-memory sink. Oldest events drop off once full."""

    def __init__(self, capacity: Optional[int] = 1000):
        """Initialize the sink.

        Args:
            capacity: Maximum events retained (None for unbounded)
        """
        self._events: deque[NotificationEvent] = deque(maxlen=capacity)

    def notify(
        self,
        member_id: str,
        category: NotificationCategory,
        message: str,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
    ) -> None:
        self._events.append(
            NotificationEvent(
                member_id=member_id,
                category=category,
                message=message,
                priority=priority,
            )
        )

    @property
    def events(self) -> list[NotificationEvent]:
        return list(self._events)

    def for_member(
        self,
        member_id: str,
        category: Optional[NotificationCategory] = None,
    ) -> list[NotificationEvent]:
        """Events for one member, oldest first, optionally by category."""
        return [
            e
            for e in self._events
            if e.member_id == member_id and (category is None or e.category == category)
        ]

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)
