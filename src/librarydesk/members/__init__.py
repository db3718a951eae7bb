"""Member accounts.

Provides functionality for:
- Borrowing and returning copies
- Locked-in fine balance and on-demand fine projection
- Renewal rules
- Read history
"""

from .models import HistoryEntry, Member, ReturnOutcome
from .schemas import HistoryEntryResponse, MemberCreate, MemberResponse, MemberUpdate

__all__ = [
    "Member",
    "HistoryEntry",
    "ReturnOutcome",
    "MemberCreate",
    "MemberUpdate",
    "MemberResponse",
    "HistoryEntryResponse",
]
