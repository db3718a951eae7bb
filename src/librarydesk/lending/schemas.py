"""Pydantic schemas for loans."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class LoanStatus(str, Enum):
    """Due-date status of an active loan."""

    CURRENT = "current"
    DUE_SOON = "due_soon"
    OVERDUE = "overdue"


class LoanResponse(BaseModel):
    """Schema for loan responses.

    Time-dependent fields are computed at the moment the response is built.
    """

    id: str
    member_id: str
    isbn: str
    title: Optional[str] = None
    start_at: datetime
    due_at: datetime
    renewals: int
    status: LoanStatus
    days_remaining: int
    days_overdue: int
    fine: int

    @classmethod
    def from_loan(
        cls,
        loan,
        now: datetime,
        per_day: int,
        due_soon_days: int,
    ) -> "LoanResponse":
        """Build a response from a Loan row while its session is open."""
        return cls(
            id=loan.id,
            member_id=loan.member_id,
            isbn=loan.copy_isbn,
            title=loan.copy.title if loan.copy is not None else None,
            start_at=loan.started,
            due_at=loan.due,
            renewals=loan.renewals or 0,
            status=loan.status(now, due_soon_days),
            days_remaining=loan.days_remaining(now),
            days_overdue=loan.days_overdue(now),
            fine=loan.fine(per_day, now),
        )
