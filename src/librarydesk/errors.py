"""Exceptions raised by the circulation desk.

Every failure is raised before any state is changed (or inside a
session that is rolled back), so callers can treat them as clean
rejections. None of them are retried automatically.
"""

from typing import Optional


class LibraryDeskError(Exception):
    """Base exception for circulation errors."""

    pass


class NotFoundError(LibraryDeskError):
    """Raised when a referenced member, copy, author or event does not exist."""

    def __init__(self, kind: str, key: str):
        super().__init__(f"{kind.capitalize()} not found: {key}")
        self.kind = kind
        self.key = key


class DuplicateError(LibraryDeskError):
    """Raised when registering a copy, member, author or event whose key is already taken."""

    pass


class UnavailableError(LibraryDeskError):
    """Raised when borrowing a copy that someone currently holds."""

    def __init__(self, isbn: str):
        super().__init__(f"Copy {isbn} is currently on loan")
        self.isbn = isbn


class AlreadyAvailableError(LibraryDeskError):
    """Raised when reserving a copy nobody holds. Borrow it instead."""

    def __init__(self, isbn: str):
        super().__init__(f"Copy {isbn} is available, borrow it directly")
        self.isbn = isbn


class AlreadyReservedError(LibraryDeskError):
    """Raised when a member reserves a copy they already queued for."""

    def __init__(self, member_id: str, isbn: str):
        super().__init__(f"Member {member_id} already has a reservation for {isbn}")
        self.member_id = member_id
        self.isbn = isbn


class OutstandingFinesError(LibraryDeskError):
    """Raised when borrowing or renewing with unpaid fines.

    Args:
        amount  Fine projection at the time of the attempt
    """

    def __init__(self, amount: int, action: str = "borrow"):
        super().__init__(f"Cannot {action} with outstanding fines: {amount}")
        self.amount = amount


class NotHeldError(LibraryDeskError):
    """Raised when returning or renewing a copy the member does not hold."""

    def __init__(self, member_id: Optional[str], isbn: str):
        super().__init__(f"Member {member_id} does not hold copy {isbn}")
        self.member_id = member_id
        self.isbn = isbn


class MustReturnFirstError(LibraryDeskError):
    """Raised when renewing an overdue loan."""

    def __init__(self, isbn: str, days_overdue: int):
        super().__init__(
            f"Copy {isbn} is {days_overdue} day(s) overdue; return it and pay the fine first"
        )
        self.isbn = isbn
        self.days_overdue = days_overdue


class ReservationsPendingError(LibraryDeskError):
    """Raised when renewing a copy that other members are queued for."""

    def __init__(self, isbn: str, pending: int):
        super().__init__(f"Cannot renew {isbn}: {pending} reservation(s) pending")
        self.isbn = isbn
        self.pending = pending


class InvalidArgumentError(LibraryDeskError, ValueError):
    """Raised for non-positive durations, payments or extensions and past event dates."""

    pass


class AlreadyEnrolledError(LibraryDeskError):
    """Raised when a member enrols in an event twice."""

    def __init__(self, member_id: str, event_id: str):
        super().__init__(f"Member {member_id} is already enrolled in event {event_id}")
        self.member_id = member_id
        self.event_id = event_id


class EventFullError(LibraryDeskError):
    """Raised when enrolling in an event with no seats left."""

    def __init__(self, event_id: str, capacity: int):
        super().__init__(f"Event {event_id} is full ({capacity} seats)")
        self.event_id = event_id
        self.capacity = capacity
