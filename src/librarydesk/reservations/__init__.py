"""Per-copy reservation queues."""

from .models import Reservation
from .queue import ReservationQueue

__all__ = [
    "Reservation",
    "ReservationQueue",
]
