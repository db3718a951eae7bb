"""Tests for ReservationQueue."""

import pytest

from librarydesk.catalog.models import Copy
from librarydesk.reservations import ReservationQueue


@pytest.fixture
def queue():
    """Queue over a copy that is not attached to a session."""
    return ReservationQueue(Copy(isbn="9780441172719", title="Dune", author="Frank Herbert"))


class TestEnqueue:
    """Tests for adding members."""

    def test_empty_queue(self, queue):
        assert len(queue) == 0
        assert not queue
        assert queue.peek() is None
        assert queue.dequeue() is None

    def test_enqueue_appends_at_tail(self, queue):
        assert queue.enqueue("ana")
        assert queue.enqueue("ben")
        assert queue.member_ids() == ["ana", "ben"]
        assert queue.position("ben") == 2

    def test_enqueue_is_idempotent(self, queue):
        queue.enqueue("ana")
        queue.enqueue("ben")
        assert not queue.enqueue("ana")
        assert queue.member_ids() == ["ana", "ben"]
        assert len(queue) == 2


class TestDequeue:
    """Tests for FIFO removal."""

    def test_peek_does_not_remove(self, queue):
        queue.enqueue("ana")
        assert queue.peek() == "ana"
        assert queue.peek() == "ana"
        assert len(queue) == 1

    def test_strict_fifo(self, queue):
        for member_id in ("ana", "ben", "cleo"):
            queue.enqueue(member_id)
        assert [queue.dequeue() for _ in range(4)] == ["ana", "ben", "cleo", None]

    def test_positions_renumber_after_dequeue(self, queue):
        for member_id in ("ana", "ben", "cleo"):
            queue.enqueue(member_id)
        queue.dequeue()
        assert queue.position("ben") == 1
        assert [r.position for r in queue.copy.reservations] == [0, 1]


class TestRemove:
    """Tests for cancellation."""

    def test_remove_from_middle(self, queue):
        for member_id in ("ana", "ben", "cleo"):
            queue.enqueue(member_id)
        assert queue.remove("ben")
        assert queue.member_ids() == ["ana", "cleo"]
        assert "ben" not in queue

    def test_remove_absent(self, queue):
        queue.enqueue("ana")
        assert not queue.remove("zoe")
        assert queue.member_ids() == ["ana"]

    def test_contains(self, queue):
        queue.enqueue("ana")
        assert queue.contains("ana")
        assert "ana" in queue
        assert not queue.contains("ben")
        assert queue.position("ben") is None

    def test_requeue_after_remove_goes_to_tail(self, queue):
        queue.enqueue("ana")
        queue.enqueue("ben")
        queue.remove("ana")
        queue.enqueue("ana")
        assert queue.member_ids() == ["ben", "ana"]
