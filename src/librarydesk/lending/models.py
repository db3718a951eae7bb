"""SQLAlchemy model for active loans.

Tables:
- loans: One row per copy currently held by a member
"""

import math
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.models import Base, from_iso, generate_uuid, timestamp, to_iso, utcnow
from ..errors import InvalidArgumentError
from .schemas import LoanStatus

if TYPE_CHECKING:
    from ..catalog.models import Copy
    from ..members.models import Member

FINE_PER_DAY = 50
DUE_SOON_DAYS = 3

_SECONDS_PER_DAY = 24 * 60 * 60


class Loan(Base):
    """Loan model - one copy held by one member.

    The row exists only while the copy is out; returning deletes it.
    The due date is changed only through ``extend``.
    """

    __tablename__ = "loans"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    member_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Unique: a copy is held by at most one member
    copy_isbn: Mapped[str] = mapped_column(
        String(20),
        ForeignKey("copies.isbn"),
        nullable=False,
        unique=True,
    )

    # Dates (ISO timestamps, UTC)
    start_at: Mapped[str] = mapped_column(String(32), nullable=False)
    due_at: Mapped[str] = mapped_column(String(32), nullable=False, index=True)

    renewals: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[str] = mapped_column(String(32), default=timestamp)
    updated_at: Mapped[str] = mapped_column(String(32), default=timestamp, onupdate=timestamp)

    # Relationships
    member: Mapped["Member"] = relationship("Member", back_populates="loans")
    copy: Mapped["Copy"] = relationship("Copy")

    def __repr__(self) -> str:
        return f"<Loan(id={self.id}, copy_isbn={self.copy_isbn}, due_at={self.due_at})>"

    @property
    def started(self) -> datetime:
        return from_iso(self.start_at)

    @property
    def due(self) -> datetime:
        return from_iso(self.due_at)

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        """Check if the due date has passed."""
        return (now or utcnow()) > self.due

    def days_overdue(self, now: Optional[datetime] = None) -> int:
        """Whole days overdue, rounded up (0 if not overdue)."""
        now = now or utcnow()
        if not self.is_overdue(now):
            return 0
        elapsed = (now - self.due).total_seconds()
        return math.ceil(elapsed / _SECONDS_PER_DAY)

    def days_remaining(self, now: Optional[datetime] = None) -> int:
        """Days until due, rounded up (negative once overdue)."""
        now = now or utcnow()
        remaining = (self.due - now).total_seconds()
        return math.ceil(remaining / _SECONDS_PER_DAY)

    def fine(self, per_day: int = FINE_PER_DAY, now: Optional[datetime] = None) -> int:
        """Fine accrued so far at the given daily rate."""
        return self.days_overdue(now) * per_day

    def status(
        self,
        now: Optional[datetime] = None,
        due_soon_days: int = DUE_SOON_DAYS,
    ) -> LoanStatus:
        """Classify the loan as current, due soon or overdue.

        Args:
            now: Reference time (default: current UTC time)
            due_soon_days: Threshold in days, inclusive

        Returns:
            LoanStatus
        """
        now = now or utcnow()
        if self.is_overdue(now):
            return LoanStatus.OVERDUE
        if self.days_remaining(now) <= due_soon_days:
            return LoanStatus.DUE_SOON
        return LoanStatus.CURRENT

    def extend(self, additional_days: int) -> datetime:
        """Push the due date forward.

        Args:
            additional_days: Days to add, must be positive

        Returns:
            The new due date

        Raises:
            InvalidArgumentError: If additional_days is not positive
        """
        if additional_days <= 0:
            raise InvalidArgumentError("Additional days must be positive")
        new_due = self.due + timedelta(days=additional_days)
        self.due_at = to_iso(new_due)
        self.renewals = (self.renewals or 0) + 1
        return new_due
