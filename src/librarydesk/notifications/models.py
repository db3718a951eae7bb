"""SQLAlchemy model for stored notifications.

Tables:
- notifications: Notifications delivered to members
"""

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..db.models import Base, timestamp


class Notification(Base):
    """Notification model - one message to one member."""

    __tablename__ = "notifications"

    # Autoincrementing so insertion order is total
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Not a foreign key: the store accepts events for any member id
    member_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(String(10), default="medium")
    read: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    created_at: Mapped[str] = mapped_column(String(32), default=timestamp, index=True)

    def __repr__(self) -> str:
        return (
            f"<Notification(id={self.id}, member_id={self.member_id}, "
            f"category={self.category}, read={self.read})>"
        )
