"""Tests for CirculationManager."""

from datetime import timedelta

import pytest

from librarydesk.errors import (
    AlreadyAvailableError,
    AlreadyReservedError,
    InvalidArgumentError,
    MustReturnFirstError,
    NotFoundError,
    NotHeldError,
    OutstandingFinesError,
    ReservationsPendingError,
    UnavailableError,
)
from librarydesk.lending import LoanStatus
from librarydesk.notifications import NotificationCategory, NotificationPriority

DUNE = "9780441172719"
HAIL_MARY = "9780593135204"
GATSBY = "9780743273565"


@pytest.fixture
def ready(copies, members):
    """Catalogue and members in place."""
    return copies, members


class TestWiring:
    """Tests for collaborator injection."""

    def test_empty_sink_is_kept(self, db, sink, config, clock, ready):
        from librarydesk.circulation import CirculationManager
        from librarydesk.notifications import NotificationManager

        assert len(sink) == 0
        desk = CirculationManager(db, notifier=sink, config=config, clock=clock)
        assert desk.notifier is sink
        assert desk.clock is clock
        assert desk.config is config

        desk.borrow("ana", DUNE)
        assert len(sink) == 1
        assert NotificationManager(db).list_for_member("ana") == []


class TestBorrow:
    """Tests for lending copies."""

    def test_borrow_creates_loan(self, desk, ready, clock, sink):
        loan = desk.borrow("ana", DUNE)

        assert loan.member_id == "ana"
        assert loan.isbn == DUNE
        assert loan.title == "Dune"
        assert loan.due_at == clock.now + timedelta(days=14)
        assert loan.status == LoanStatus.CURRENT
        assert desk.holder_of(DUNE) == "ana"
        assert not desk.is_available(DUNE)

        events = sink.for_member("ana", NotificationCategory.LOAN)
        assert len(events) == 1
        assert "Dune" in events[0].message

    def test_borrow_custom_duration(self, desk, ready, clock):
        loan = desk.borrow("ana", DUNE, duration_days=7)
        assert loan.due_at == clock.now + timedelta(days=7)

    def test_borrow_unknown_member(self, desk, ready):
        with pytest.raises(NotFoundError) as exc:
            desk.borrow("nobody", DUNE)
        assert exc.value.kind == "member"

    def test_borrow_unknown_copy(self, desk, ready):
        with pytest.raises(NotFoundError) as exc:
            desk.borrow("ana", "0000000000")
        assert exc.value.kind == "copy"

    def test_borrow_held_copy(self, desk, ready, sink):
        desk.borrow("ana", DUNE)
        with pytest.raises(UnavailableError):
            desk.borrow("ben", DUNE)
        assert desk.holder_of(DUNE) == "ana"
        assert desk.active_loans("ben") == []

    def test_borrow_own_copy_twice(self, desk, ready):
        desk.borrow("ana", DUNE)
        with pytest.raises(UnavailableError):
            desk.borrow("ana", DUNE)
        assert len(desk.active_loans("ana")) == 1

    def test_borrow_invalid_duration(self, desk, ready):
        with pytest.raises(InvalidArgumentError):
            desk.borrow("ana", DUNE, duration_days=0)
        assert desk.is_available(DUNE)

    def test_borrow_clears_own_reservation(self, desk, ready):
        desk.borrow("ana", DUNE)
        desk.reserve("ben", DUNE)
        desk.reserve("cleo", DUNE)
        desk.return_copy("ana", DUNE)  # ben is handed off, cleo still queued
        assert desk.queue_for(DUNE) == ["cleo"]

        desk.borrow("cleo", DUNE)
        assert desk.queue_for(DUNE) == []

    def test_anyone_may_borrow_after_hand_off(self, desk, ready):
        desk.borrow("ana", DUNE)
        desk.reserve("ben", DUNE)
        desk.return_copy("ana", DUNE)

        # Grace window is advisory: the copy is simply free
        loan = desk.borrow("cleo", DUNE)
        assert loan.member_id == "cleo"


class TestSingleHolder:
    """Tests for the one-holder-per-copy rule."""

    def test_at_most_one_holder(self, desk, ready):
        desk.borrow("ana", DUNE)
        for member_id in ("ben", "cleo"):
            with pytest.raises(UnavailableError):
                desk.borrow(member_id, DUNE)

        holders = [
            m for m in ("ana", "ben", "cleo")
            if any(loan.isbn == DUNE for loan in desk.active_loans(m))
        ]
        assert holders == ["ana"]

    def test_available_copies(self, desk, ready):
        desk.borrow("ana", DUNE)
        assert [c.isbn for c in desk.available_copies()] == [HAIL_MARY, GATSBY]

        desk.return_copy("ana", DUNE)
        assert len(desk.available_copies()) == 3

    def test_copy_status(self, desk, ready):
        desk.borrow("ana", DUNE)
        desk.reserve("ben", DUNE)

        status = desk.copy_status(DUNE)
        assert status.holder == "ana"
        assert status.queue_length == 1
        assert not status.available
        assert desk.copy_status(GATSBY).available

        with pytest.raises(NotFoundError):
            desk.copy_status("0000000000")

    def test_catalog_view(self, desk, ready):
        desk.borrow("ana", DUNE)

        view = desk.catalog_view()
        assert [c.title for c in view] == ["Dune", "Project Hail Mary", "The Great Gatsby"]
        assert view[0].holder == "ana"
        assert [c.isbn for c in desk.catalog_view(available_only=True)] == [HAIL_MARY, GATSBY]


class TestReturn:
    """Tests for returning copies."""

    def test_return_on_time_keeps_balance(self, desk, ready, clock):
        desk.borrow("ana", DUNE)
        clock.advance(days=3)
        receipt = desk.return_copy("ana", DUNE)

        assert receipt.fine_charged == 0
        assert receipt.fine_balance == 0
        assert receipt.handed_off_to is None
        assert desk.member_account("ana").fine_balance == 0
        assert desk.is_available(DUNE)

    def test_immediate_round_trip(self, desk, ready):
        desk.borrow("ana", DUNE)
        desk.return_copy("ana", DUNE)
        assert desk.member_account("ana").fine_balance == 0

    def test_late_return_scenario(self, desk, ready, clock, sink):
        desk.borrow("ana", DUNE, duration_days=14)
        clock.advance(days=20)

        before = desk.member_account("ana")
        assert before.fine_balance == 0
        assert before.outstanding_fines == 6 * 50

        receipt = desk.return_copy("ana", DUNE)

        assert receipt.days_overdue == 6
        assert receipt.fine_charged == 300
        account = desk.member_account("ana")
        assert account.fine_balance == 300
        assert account.outstanding_fines == 300

        fines = sink.for_member("ana", NotificationCategory.FINE)
        assert len(fines) == 1
        assert fines[0].priority == NotificationPriority.HIGH

    def test_return_records_history(self, desk, ready, clock):
        desk.borrow("ana", DUNE)
        first = clock.advance(days=1)
        desk.return_copy("ana", DUNE)
        desk.borrow("ana", DUNE)
        last = clock.advance(days=2)
        desk.return_copy("ana", DUNE)

        history = desk.read_history("ana")
        assert [h.copy_isbn for h in history] == [DUNE]
        assert history[0].title == "Dune"
        assert history[0].times_returned == 2
        assert history[0].added_at == first
        assert history[0].last_returned_at == last
        assert desk.member_account("ana").books_read == 1

    def test_return_not_held(self, desk, ready):
        desk.borrow("ana", DUNE)
        with pytest.raises(NotHeldError):
            desk.return_copy("ben", DUNE)
        assert desk.holder_of(DUNE) == "ana"

    def test_return_unknown_copy(self, desk, ready):
        with pytest.raises(NotFoundError):
            desk.return_copy("ana", "0000000000")


class TestReservations:
    """Tests for the reservation queue workflow."""

    def test_reserve_returns_position(self, desk, ready, sink):
        desk.borrow("ana", DUNE)
        assert desk.reserve("ben", DUNE) == 1
        assert desk.reserve("cleo", DUNE) == 2
        assert desk.queue_for(DUNE) == ["ben", "cleo"]

        events = sink.for_member("ben", NotificationCategory.RESERVATION)
        assert "position: 1" in events[0].message

    def test_reserve_available_copy(self, desk, ready):
        with pytest.raises(AlreadyAvailableError):
            desk.reserve("ben", DUNE)
        assert desk.queue_for(DUNE) == []

    def test_reserve_twice(self, desk, ready):
        desk.borrow("ana", DUNE)
        desk.reserve("ben", DUNE)
        with pytest.raises(AlreadyReservedError):
            desk.reserve("ben", DUNE)
        assert desk.queue_for(DUNE) == ["ben"]

    def test_reserve_unknown_member(self, desk, ready):
        desk.borrow("ana", DUNE)
        with pytest.raises(NotFoundError):
            desk.reserve("nobody", DUNE)

    def test_cancel_then_return_sends_no_hand_off(self, desk, ready, sink):
        desk.borrow("ana", DUNE)
        assert desk.reserve("ben", DUNE) == 1
        assert desk.cancel_reservation("ben", DUNE)
        assert desk.queue_for(DUNE) == []
        assert [e.category for e in sink.for_member("ben")] == [
            NotificationCategory.RESERVATION,
            NotificationCategory.RESERVATION,
        ]
        sent = len(sink)

        receipt = desk.return_copy("ana", DUNE)

        assert receipt.handed_off_to is None
        assert len(sink) == sent
        assert sink.for_member("ben", NotificationCategory.AVAILABILITY) == []

    def test_cancel_absent_reservation_is_not_an_error(self, desk, ready, sink):
        desk.borrow("ana", DUNE)
        assert desk.cancel_reservation("ben", DUNE) is False
        assert sink.for_member("ben") == []

    def test_cancel_from_middle(self, desk, ready):
        desk.borrow("ana", DUNE)
        desk.reserve("ben", DUNE)
        desk.reserve("cleo", DUNE)
        desk.cancel_reservation("ben", DUNE)
        assert desk.queue_for(DUNE) == ["cleo"]

    def test_cancel_unknown_copy(self, desk, ready):
        with pytest.raises(NotFoundError):
            desk.cancel_reservation("ben", "0000000000")

    def test_hand_off_notifies_head_without_loan(self, desk, ready, clock, sink):
        desk.borrow("ana", DUNE)
        desk.reserve("ben", DUNE)
        desk.reserve("cleo", DUNE)

        receipt = desk.return_copy("ana", DUNE)

        assert receipt.handed_off_to == "ben"
        assert receipt.hold_expires_at == clock.now + timedelta(hours=24)
        assert desk.queue_for(DUNE) == ["cleo"]
        assert desk.active_loans("ben") == []
        assert desk.is_available(DUNE)

        handed = sink.for_member("ben", NotificationCategory.AVAILABILITY)
        assert len(handed) == 1
        assert "24 hours" in handed[0].message
        assert sink.for_member("cleo", NotificationCategory.AVAILABILITY) == []

        desk.borrow("ben", DUNE)
        assert desk.holder_of(DUNE) == "ben"

    def test_member_listed_reservations(self, desk, ready):
        desk.borrow("ana", DUNE)
        desk.borrow("ana", GATSBY)
        desk.reserve("ben", DUNE)
        desk.reserve("ben", GATSBY)
        assert sorted(desk.member_account("ben").reservations) == [DUNE, GATSBY]


class TestRenew:
    """Tests for renewals."""

    def test_renew_extends(self, desk, ready, clock, sink):
        desk.borrow("ana", DUNE)
        clock.advance(days=10)
        loan = desk.renew("ana", DUNE)

        assert loan.due_at == clock.now - timedelta(days=10) + timedelta(days=28)
        assert loan.renewals == 1
        assert len(sink.for_member("ana", NotificationCategory.RENEWAL)) == 1

    def test_renew_custom_days(self, desk, ready, clock):
        loan = desk.borrow("ana", DUNE)
        renewed = desk.renew("ana", DUNE, additional_days=3)
        assert renewed.due_at == loan.due_at + timedelta(days=3)

    @pytest.mark.parametrize("requester", ["ana", "ben"])
    def test_renew_blocked_by_any_reservation(self, desk, ready, requester):
        desk.borrow("ana", DUNE)
        desk.reserve("cleo", DUNE)
        with pytest.raises(ReservationsPendingError) as exc:
            desk.renew(requester, DUNE)
        assert exc.value.pending == 1

    def test_renew_blocked_when_holder_queued(self, desk, ready):
        desk.borrow("ana", DUNE)
        desk.reserve("ana", DUNE)
        with pytest.raises(ReservationsPendingError):
            desk.renew("ana", DUNE)

    def test_renew_not_held(self, desk, ready):
        desk.borrow("ana", DUNE)
        with pytest.raises(NotHeldError):
            desk.renew("ben", DUNE)

    def test_renew_overdue_blocked_by_live_fine(self, desk, ready, clock):
        loan = desk.borrow("ana", DUNE)
        clock.advance(days=15)
        with pytest.raises(OutstandingFinesError):
            desk.renew("ana", DUNE)
        assert desk.active_loans("ana")[0].due_at == loan.due_at

    def test_renew_overdue_without_fine_rate(self, db, sink, config, clock, ready):
        from librarydesk.circulation import CirculationManager

        config.fine_per_day = 0
        desk = CirculationManager(db, notifier=sink, config=config, clock=clock)
        desk.borrow("ana", DUNE)
        clock.advance(days=15)
        with pytest.raises(MustReturnFirstError):
            desk.renew("ana", DUNE)

    def test_renew_invalid_days_leaves_loan(self, desk, ready):
        loan = desk.borrow("ana", DUNE)
        with pytest.raises(InvalidArgumentError):
            desk.renew("ana", DUNE, additional_days=-1)
        assert desk.active_loans("ana")[0].due_at == loan.due_at
        assert desk.active_loans("ana")[0].renewals == 0


class TestFines:
    """Tests for fine eligibility and payment."""

    def test_fines_block_borrow_and_renew(self, desk, ready, clock):
        desk.borrow("ana", DUNE)
        desk.borrow("ana", GATSBY, duration_days=30)
        clock.advance(days=16)
        desk.return_copy("ana", DUNE)

        with pytest.raises(OutstandingFinesError):
            desk.borrow("ana", HAIL_MARY)
        with pytest.raises(OutstandingFinesError):
            desk.renew("ana", GATSBY)
        assert desk.is_available(HAIL_MARY)

    def test_currently_overdue_loan_blocks_borrow(self, desk, ready, clock):
        desk.borrow("ana", DUNE)
        clock.advance(days=15)

        account = desk.member_account("ana")
        assert account.fine_balance == 0
        assert account.outstanding_fines == 50
        assert not account.can_borrow
        assert account.overdue_count == 1
        with pytest.raises(OutstandingFinesError):
            desk.borrow("ana", GATSBY)

    def test_pay_fine_restores_eligibility(self, desk, ready, clock, sink):
        desk.borrow("ana", DUNE)
        clock.advance(days=16)
        desk.return_copy("ana", DUNE)

        assert desk.pay_fine("ana", 40) == 60
        assert sink.for_member("ana", NotificationCategory.FINE)[-1].message.startswith("Fine of")
        assert desk.pay_fine("ana", 100) == 0

        assert sink.for_member("ana", NotificationCategory.FINE)[-1].message.startswith(
            "All fines have been paid"
        )
        assert desk.member_account("ana").can_borrow
        desk.borrow("ana", GATSBY)

    def test_pay_fine_invalid_amount(self, desk, ready):
        with pytest.raises(InvalidArgumentError):
            desk.pay_fine("ana", 0)

    def test_pay_fine_unknown_member(self, desk, ready):
        with pytest.raises(NotFoundError):
            desk.pay_fine("nobody", 10)

    def test_paying_with_no_balance_sends_nothing(self, desk, ready, sink):
        assert desk.pay_fine("ana", 10) == 0
        assert sink.for_member("ana") == []


class TestQueries:
    """Tests for loan listings, reminders and stats."""

    def test_overdue_and_due_soon(self, desk, ready, clock):
        desk.borrow("ana", DUNE, duration_days=2)
        desk.borrow("ben", GATSBY, duration_days=5)
        desk.borrow("cleo", HAIL_MARY, duration_days=30)
        clock.advance(days=3)

        assert [l.isbn for l in desk.overdue_loans()] == [DUNE]
        assert [l.isbn for l in desk.loans_due_soon()] == [GATSBY]
        assert [l.isbn for l in desk.loans_due_soon(days=30)] == [GATSBY, HAIL_MARY]
        assert [l.isbn for l in desk.all_loans()] == [DUNE, GATSBY, HAIL_MARY]

    def test_loan_due_now_is_due_soon(self, desk, ready, clock):
        desk.borrow("ana", DUNE, duration_days=2)
        clock.advance(days=2)

        assert desk.overdue_loans() == []
        assert [l.isbn for l in desk.loans_due_soon()] == [DUNE]

        clock.advance(minutes=1)
        assert desk.loans_due_soon() == []
        assert [l.isbn for l in desk.overdue_loans()] == [DUNE]

    def test_send_due_reminders(self, desk, ready, clock, sink):
        desk.borrow("ana", DUNE, duration_days=2)
        desk.borrow("ben", GATSBY, duration_days=5)
        desk.borrow("cleo", HAIL_MARY, duration_days=30)
        clock.advance(days=3)
        sink.clear()

        assert desk.send_due_reminders() == 2
        overdue = sink.for_member("ana", NotificationCategory.OVERDUE)
        assert "1 day(s) overdue" in overdue[0].message
        assert "Current fine: 50" in overdue[0].message
        assert len(sink.for_member("ben", NotificationCategory.DUE_SOON)) == 1
        assert sink.for_member("cleo") == []

    def test_stats(self, desk, ready, clock):
        desk.borrow("ana", DUNE)
        desk.borrow("ben", GATSBY, duration_days=30)
        desk.reserve("cleo", DUNE)
        clock.advance(days=15)

        stats = desk.get_stats()
        assert stats.total_copies == 3
        assert stats.copies_on_loan == 2
        assert stats.copies_available == 1
        assert stats.total_members == 3
        assert stats.overdue_loans == 1
        assert stats.pending_reservations == 1
        assert stats.members_with_fines == 1
        assert stats.fines_outstanding == 0

    def test_member_account_unknown(self, desk, ready):
        with pytest.raises(NotFoundError):
            desk.member_account("nobody")

    def test_holder_of_unknown_copy(self, desk, ready):
        with pytest.raises(NotFoundError):
            desk.holder_of("0000000000")


class TestStoredNotifications:
    """Tests for the default database-backed notifier."""

    def test_default_notifier_stores_events(self, db, config, clock, ready):
        from librarydesk.circulation import CirculationManager
        from librarydesk.notifications import NotificationManager

        desk = CirculationManager(db, config=config, clock=clock)
        desk.borrow("ana", DUNE)
        desk.reserve("ben", DUNE)
        desk.return_copy("ana", DUNE)

        store = NotificationManager(db)
        categories = [n.category for n in store.list_for_member("ben")]
        assert categories == ["availability", "reservation"]
        assert store.unread_count("ben") == 2
