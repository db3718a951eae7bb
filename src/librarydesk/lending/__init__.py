"""Loan records.

Provides functionality for:
- Overdue detection and whole-day overdue counts
- Per-diem fine calculation
- Due-soon classification
- Due date extension on renewal
"""

from .models import DUE_SOON_DAYS, FINE_PER_DAY, Loan
from .schemas import LoanResponse, LoanStatus

__all__ = [
    "Loan",
    "LoanResponse",
    "LoanStatus",
    "FINE_PER_DAY",
    "DUE_SOON_DAYS",
]
