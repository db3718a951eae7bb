"""Database-backed notification store."""

import logging
from typing import Optional

from sqlalchemy import delete, func, select, update

from ..db.sqlite import Database, get_db
from .models import Notification
from .schemas import NotificationCategory, NotificationPriority

_log = logging.getLogger(__name__)


class NotificationManager:
    """Stores notifications per member with bounded retention.

    Only the newest ``capacity`` notifications of each member are kept;
    older ones are pruned whenever a new one is stored.
    """

    def __init__(self, db: Optional[Database] = None, capacity: int = 50):
        """Initialize notification manager.

        Args:
            db: Database instance
            capacity: Notifications kept per member
        """
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.db = db or get_db()
        self.capacity = capacity

    def notify(
        self,
        member_id: str,
        category: NotificationCategory,
        message: str,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
    ) -> None:
        """Store a notification for a member."""
        with self.db.get_session() as session:
            session.add(
                Notification(
                    member_id=member_id,
                    category=NotificationCategory(category).value,
                    message=message,
                    priority=NotificationPriority(priority).value,
                )
            )
            session.flush()
            pruned = self._prune(session, member_id)
            session.commit()

        _log.debug("Notified %s [%s]: %s", member_id, category, message)
        if pruned:
            _log.debug("Pruned %d old notification(s) for %s", pruned, member_id)

    def _prune(self, session, member_id: str) -> int:
        keep = (
            select(Notification.id)
            .where(Notification.member_id == member_id)
            .order_by(Notification.id.desc())
            .limit(self.capacity)
        )
        result = session.execute(
            delete(Notification)
            .where(Notification.member_id == member_id)
            .where(Notification.id.not_in(keep))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    def list_for_member(
        self,
        member_id: str,
        unread_only: bool = False,
        category: Optional[NotificationCategory] = None,
    ) -> list[Notification]:
        """List a member's notifications, newest first.

        Args:
            member_id: Member ID
            unread_only: Only return unread notifications
            category: Filter by category

        Returns:
            List of notifications
        """
        with self.db.get_session() as session:
            stmt = select(Notification).where(Notification.member_id == member_id)
            if unread_only:
                stmt = stmt.where(Notification.read.is_(False))
            if category:
                stmt = stmt.where(Notification.category == NotificationCategory(category).value)
            stmt = stmt.order_by(Notification.id.desc())

            notifications = session.execute(stmt).scalars().all()
            for n in notifications:
                session.expunge(n)
            return list(notifications)

    def unread_count(self, member_id: str) -> int:
        with self.db.get_session() as session:
            return session.execute(
                select(func.count()).where(
                    Notification.member_id == member_id,
                    Notification.read.is_(False),
                )
            ).scalar() or 0

    def mark_read(self, notification_id: int) -> bool:
        """Mark one notification as read.

        Returns:
            True if the notification exists
        """
        with self.db.get_session() as session:
            notification = session.get(Notification, notification_id)
            if not notification:
                return False
            notification.read = True
            session.commit()
            return True

    def mark_all_read(self, member_id: str) -> int:
        """Mark all of a member's notifications as read.

        Returns:
            Number of notifications changed
        """
        with self.db.get_session() as session:
            result = session.execute(
                update(Notification)
                .where(
                    Notification.member_id == member_id,
                    Notification.read.is_(False),
                )
                .values(read=True)
                .execution_options(synchronize_session=False)
            )
            session.commit()
            return result.rowcount or 0
