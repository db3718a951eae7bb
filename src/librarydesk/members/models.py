"""SQLAlchemy models for member accounts.

Tables:
- members: Member accounts and their locked-in fine balance
- read_history: Copies each member has returned, with return counts
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.models import Base, generate_uuid, timestamp, to_iso, utcnow
from ..errors import (
    InvalidArgumentError,
    MustReturnFirstError,
    NotHeldError,
    OutstandingFinesError,
)
from ..lending.models import DUE_SOON_DAYS, FINE_PER_DAY, Loan
from ..lending.schemas import LoanStatus

if TYPE_CHECKING:
    from ..catalog.models import Copy


@dataclass
class ReturnOutcome:
    """Result of a member returning a copy."""

    loan: Loan
    days_overdue: int
    fine: int
    balance: int

    @property
    def was_overdue(self) -> bool:
        return self.days_overdue > 0


class Member(Base):
    """Member account - active loans, fines and read history.

    ``fine_balance`` holds only fines locked in by past returns. Loans
    that are overdue right now add to ``outstanding_fines`` without
    being stored until the copy comes back.
    """

    __tablename__ = "members"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(200))
    phone: Mapped[Optional[str]] = mapped_column(String(50))

    fine_balance: Mapped[int] = mapped_column(Integer, default=0)

    registered_at: Mapped[str] = mapped_column(String(32), default=timestamp)
    created_at: Mapped[str] = mapped_column(String(32), default=timestamp)
    updated_at: Mapped[str] = mapped_column(String(32), default=timestamp, onupdate=timestamp)

    # Relationships
    loans: Mapped[list["Loan"]] = relationship(
        "Loan",
        back_populates="member",
        cascade="all, delete-orphan",
        order_by="Loan.start_at",
    )
    history: Mapped[list["HistoryEntry"]] = relationship(
        "HistoryEntry",
        back_populates="member",
        cascade="all, delete-orphan",
        order_by="HistoryEntry.added_at",
    )

    def __repr__(self) -> str:
        return f"<Member(id={self.id}, name='{self.name}')>"

    @property
    def balance(self) -> int:
        """Locked-in fine balance (0 before the row is first flushed)."""
        return self.fine_balance or 0

    # -------------------------------------------------------------------------
    # Loans
    # -------------------------------------------------------------------------

    def loan_for(self, copy: "Copy") -> Optional[Loan]:
        """Active loan for a copy, if this member holds it."""
        for loan in self.loans:
            if loan.copy_isbn == copy.isbn:
                return loan
        return None

    def overdue_loans(self, now: Optional[datetime] = None) -> list[Loan]:
        now = now or utcnow()
        return [loan for loan in self.loans if loan.is_overdue(now)]

    def loans_due_soon(
        self,
        days: int = DUE_SOON_DAYS,
        now: Optional[datetime] = None,
    ) -> list[Loan]:
        now = now or utcnow()
        return [loan for loan in self.loans if loan.status(now, days) == LoanStatus.DUE_SOON]

    def borrow(
        self,
        copy: "Copy",
        duration_days: int,
        per_day: int = FINE_PER_DAY,
        now: Optional[datetime] = None,
    ) -> Loan:
        """Start a loan on a copy.

        Availability of the copy and the reservation queue are the
        caller's concern; this only applies the member's own rules.

        Args:
            copy: Copy to borrow
            duration_days: Loan length in days
            per_day: Daily fine rate used for the fine projection
            now: Loan start time (default: current UTC time)

        Returns:
            The new loan

        Raises:
            OutstandingFinesError: If the fine projection is nonzero
            InvalidArgumentError: If duration_days is not positive
        """
        now = now or utcnow()
        owed = self.outstanding_fines(per_day, now)
        if owed > 0:
            raise OutstandingFinesError(owed)
        if duration_days <= 0:
            raise InvalidArgumentError("Loan duration must be positive")

        loan = Loan(
            copy_isbn=copy.isbn,
            start_at=to_iso(now),
            due_at=to_iso(now + timedelta(days=duration_days)),
            renewals=0,
        )
        loan.copy = copy
        self.loans.append(loan)
        return loan

    def return_copy(
        self,
        copy: "Copy",
        per_day: int = FINE_PER_DAY,
        now: Optional[datetime] = None,
    ) -> ReturnOutcome:
        """Return a held copy.

        The fine for an overdue loan is locked into the balance using
        the overdue-day count at this instant.

        Raises:
            NotHeldError: If the member has no active loan for the copy
        """
        now = now or utcnow()
        loan = self.loan_for(copy)
        if loan is None:
            raise NotHeldError(self.id, copy.isbn)

        days_overdue = loan.days_overdue(now)
        fine = loan.fine(per_day, now)

        self.loans.remove(loan)
        self.add_to_history(copy, now)
        if fine > 0:
            self.fine_balance = self.balance + fine

        return ReturnOutcome(loan=loan, days_overdue=days_overdue, fine=fine, balance=self.balance)

    def renew(
        self,
        copy: "Copy",
        additional_days: int,
        per_day: int = FINE_PER_DAY,
        now: Optional[datetime] = None,
    ) -> Loan:
        """Extend the due date of a held, not-yet-overdue loan.

        Raises:
            OutstandingFinesError: If the fine projection is nonzero
            NotHeldError: If the member does not hold the copy
            MustReturnFirstError: If the loan is already overdue
            InvalidArgumentError: If additional_days is not positive
        """
        now = now or utcnow()
        owed = self.outstanding_fines(per_day, now)
        if owed > 0:
            raise OutstandingFinesError(owed, action="renew")

        loan = self.loan_for(copy)
        if loan is None:
            raise NotHeldError(self.id, copy.isbn)
        if loan.is_overdue(now):
            raise MustReturnFirstError(copy.isbn, loan.days_overdue(now))

        loan.extend(additional_days)
        return loan

    # -------------------------------------------------------------------------
    # Fines
    # -------------------------------------------------------------------------

    def outstanding_fines(self, per_day: int = FINE_PER_DAY, now: Optional[datetime] = None) -> int:
        """Locked-in balance plus live fines of currently overdue loans."""
        now = now or utcnow()
        return self.balance + sum(loan.fine(per_day, now) for loan in self.loans)

    def can_borrow(self, per_day: int = FINE_PER_DAY, now: Optional[datetime] = None) -> bool:
        return self.outstanding_fines(per_day, now) == 0

    def pay_fine(self, amount: int) -> int:
        """Pay towards the locked-in balance.

        Overpayment is not credited: the balance floors at zero.

        Returns:
            Amount actually applied to the balance

        Raises:
            InvalidArgumentError: If amount is not positive
        """
        if amount <= 0:
            raise InvalidArgumentError("Payment amount must be positive")
        applied = min(amount, self.balance)
        self.fine_balance = self.balance - applied
        return applied

    # -------------------------------------------------------------------------
    # Read history
    # -------------------------------------------------------------------------

    def has_read(self, copy: "Copy") -> bool:
        return any(entry.copy_isbn == copy.isbn for entry in self.history)

    def add_to_history(self, copy: "Copy", now: Optional[datetime] = None) -> bool:
        """Record a return of a copy, one entry per ISBN.

        A repeat return only bumps ``times_returned`` and
        ``last_returned_at`` on the existing entry.

        Returns:
            True if a new entry was added
        """
        returned_at = to_iso(now or utcnow())
        for entry in self.history:
            if entry.copy_isbn == copy.isbn:
                entry.times_returned = (entry.times_returned or 0) + 1
                entry.last_returned_at = returned_at
                return False
        self.history.append(
            HistoryEntry(
                copy_isbn=copy.isbn,
                title=copy.title,
                author=copy.author,
                added_at=returned_at,
                last_returned_at=returned_at,
                times_returned=1,
            )
        )
        return True


class HistoryEntry(Base):
    """A copy the member has returned. Kept after the copy leaves the catalog."""

    __tablename__ = "read_history"
    __table_args__ = (UniqueConstraint("member_id", "copy_isbn", name="uq_history_member_copy"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    member_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    copy_isbn: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    author: Mapped[str] = mapped_column(String(500), nullable=False)
    # First and most recent return
    added_at: Mapped[str] = mapped_column(String(32), default=timestamp)
    last_returned_at: Mapped[str] = mapped_column(String(32), default=timestamp)
    times_returned: Mapped[int] = mapped_column(Integer, default=1)

    member: Mapped["Member"] = relationship("Member", back_populates="history")

    def __repr__(self) -> str:
        return f"<HistoryEntry(member_id={self.member_id}, copy_isbn={self.copy_isbn})>"
