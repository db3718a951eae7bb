"""Tests for notification storage."""

import pytest

from librarydesk.notifications import (
    MemoryNotificationSink,
    NotificationCategory,
    NotificationManager,
    NotificationPriority,
)


@pytest.fixture
def store(db):
    return NotificationManager(db, capacity=3)


class TestNotificationManager:
    """Tests for the database-backed store."""

    def test_notify_and_list(self, store):
        store.notify("ana", NotificationCategory.LOAN, "You borrowed Dune", NotificationPriority.LOW)
        items = store.list_for_member("ana")

        assert len(items) == 1
        assert items[0].category == "loan"
        assert items[0].priority == "low"
        assert items[0].read is False

    def test_newest_first(self, store):
        store.notify("ana", NotificationCategory.LOAN, "first")
        store.notify("ana", NotificationCategory.FINE, "second")
        assert [n.message for n in store.list_for_member("ana")] == ["second", "first"]

    def test_bounded_per_member(self, store):
        for i in range(5):
            store.notify("ana", NotificationCategory.LOAN, f"message {i}")
        store.notify("ben", NotificationCategory.LOAN, "other member")

        messages = [n.message for n in store.list_for_member("ana")]
        assert messages == ["message 4", "message 3", "message 2"]
        assert len(store.list_for_member("ben")) == 1

    def test_filter_by_category(self, store):
        store.notify("ana", NotificationCategory.LOAN, "loan")
        store.notify("ana", NotificationCategory.FINE, "fine")
        items = store.list_for_member("ana", category=NotificationCategory.FINE)
        assert [n.message for n in items] == ["fine"]

    def test_mark_read(self, store):
        store.notify("ana", NotificationCategory.LOAN, "one")
        store.notify("ana", NotificationCategory.LOAN, "two")
        newest = store.list_for_member("ana")[0]

        assert store.mark_read(newest.id)
        assert store.unread_count("ana") == 1
        assert [n.message for n in store.list_for_member("ana", unread_only=True)] == ["one"]
        assert not store.mark_read(9999)

    def test_mark_all_read(self, store):
        store.notify("ana", NotificationCategory.LOAN, "one")
        store.notify("ana", NotificationCategory.LOAN, "two")
        assert store.mark_all_read("ana") == 2
        assert store.unread_count("ana") == 0
        assert store.mark_all_read("ana") == 0

    def test_capacity_must_be_positive(self, db):
        with pytest.raises(ValueError):
            NotificationManager(db, capacity=0)


class TestMemoryNotificationSink:
    """Tests for the in-process sink."""

    def test_records_events(self):
        sink = MemoryNotificationSink()
        sink.notify("ana", NotificationCategory.RESERVATION, "queued")
        event = sink.events[0]

        assert event.member_id == "ana"
        assert event.category == NotificationCategory.RESERVATION
        assert event.priority == NotificationPriority.MEDIUM
        assert len(sink) == 1

    def test_bounded(self):
        sink = MemoryNotificationSink(capacity=2)
        for i in range(4):
            sink.notify("ana", NotificationCategory.LOAN, str(i))
        assert [e.message for e in sink.events] == ["2", "3"]

    def test_for_member(self):
        sink = MemoryNotificationSink()
        sink.notify("ana", NotificationCategory.LOAN, "a")
        sink.notify("ben", NotificationCategory.LOAN, "b")
        sink.notify("ana", NotificationCategory.FINE, "c")

        assert [e.message for e in sink.for_member("ana")] == ["a", "c"]
        assert [e.message for e in sink.for_member("ana", NotificationCategory.FINE)] == ["c"]
        sink.clear()
        assert sink.events == []
