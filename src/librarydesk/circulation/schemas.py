"""Pydantic schemas for circulation desk results."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ..lending.schemas import LoanResponse


class ReturnReceipt(BaseModel):
    """Outcome of a return, including any queue hand-off."""

    member_id: str
    isbn: str
    title: str
    returned_at: datetime
    days_overdue: int
    fine_charged: int
    fine_balance: int
    handed_off_to: Optional[str] = None
    # Advisory pickup deadline for handed_off_to; not enforced
    hold_expires_at: Optional[datetime] = None


class AccountSummary(BaseModel):
    """A member's standing at the desk."""

    member_id: str
    name: str
    fine_balance: int
    outstanding_fines: int
    can_borrow: bool
    active_loans: list[LoanResponse]
    reservations: list[str]
    books_read: int

    @property
    def overdue_count(self) -> int:
        return sum(1 for loan in self.active_loans if loan.days_overdue > 0)


class CirculationStats(BaseModel):
    """Overall circulation statistics."""

    total_copies: int
    copies_on_loan: int
    copies_available: int
    total_members: int
    active_loans: int
    overdue_loans: int
    pending_reservations: int
    members_with_fines: int
    fines_outstanding: int
