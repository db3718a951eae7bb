"""Circulation desk.

Provides functionality for:
- Borrowing free copies and returning them
- Per-diem fines locked in on return
- Reservation queues with hand-off to the next member on return
- Renewal blocked by fines, overdue loans or pending reservations
- Due-date reminders and circulation statistics
"""

from .manager import CirculationManager
from .schemas import AccountSummary, CirculationStats, ReturnReceipt

__all__ = [
    "CirculationManager",
    "AccountSummary",
    "CirculationStats",
    "ReturnReceipt",
]
