"""FIFO reservation queue over a copy's reservation rows."""

from typing import Optional

from .models import Reservation


class ReservationQueue:
    """Members waiting for one copy, in the order they reserved.

    Membership is unique, so hand-off priority never ties. Every
    operation is a linear scan; queues are short.
    """

    def __init__(self, copy):
        """Wrap a copy's reservation list.

        Args:
            copy: Copy whose ``reservations`` collection backs the queue
        """
        self.copy = copy

    @property
    def _entries(self) -> list[Reservation]:
        return self.copy.reservations

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return len(self._entries) > 0

    def __contains__(self, member_id: str) -> bool:
        return self.contains(member_id)

    def enqueue(self, member_id: str) -> bool:
        """Append a member at the tail.

        Returns:
            False if the member was already queued (nothing changes)
        """
        if self.contains(member_id):
            return False
        self._entries.append(Reservation(member_id=member_id))
        return True

    def peek(self) -> Optional[str]:
        """Member at the head, without removing them."""
        if not self._entries:
            return None
        return self._entries[0].member_id

    def dequeue(self) -> Optional[str]:
        """Remove and return the member at the head."""
        if not self._entries:
            return None
        return self._entries.pop(0).member_id

    def remove(self, member_id: str) -> bool:
        """Cancel a member's reservation wherever it sits in the queue."""
        for entry in self._entries:
            if entry.member_id == member_id:
                self._entries.remove(entry)
                return True
        return False

    def contains(self, member_id: str) -> bool:
        return any(entry.member_id == member_id for entry in self._entries)

    def position(self, member_id: str) -> Optional[int]:
        """1-based queue position, or None if not queued."""
        for index, entry in enumerate(self._entries, start=1):
            if entry.member_id == member_id:
                return index
        return None

    def member_ids(self) -> list[str]:
        return [entry.member_id for entry in self._entries]
