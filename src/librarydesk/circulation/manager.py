"""Circulation manager: borrow, return, reserve and renew across members and copies.

The manager is the only place that knows who holds a copy. Holding is
derived from the ``loans`` table (the unique ``copy_isbn`` column keeps
it single-holder); copies carry no borrowed flag.

Each operation runs in one database session. Any error rolls the
session back, so a rejected request leaves no partial effects.
Notifications are collected while the operation runs and sent only
after it has been committed.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import exists, func, select

from ..catalog.models import Copy
from ..catalog.schemas import CopyResponse
from ..config import Config, get_config
from ..db.models import utcnow
from ..db.sqlite import Database, get_db
from ..errors import (
    AlreadyAvailableError,
    AlreadyReservedError,
    NotFoundError,
    ReservationsPendingError,
    UnavailableError,
)
from ..lending.models import Loan
from ..lending.schemas import LoanResponse, LoanStatus
from ..members.models import Member
from ..members.schemas import HistoryEntryResponse
from ..notifications.manager import NotificationManager
from ..notifications.schemas import (
    NotificationCategory,
    NotificationEvent,
    NotificationPriority,
)
from ..notifications.sink import NotificationSink
from ..reservations.models import Reservation
from ..reservations.queue import ReservationQueue
from .schemas import AccountSummary, CirculationStats, ReturnReceipt

_log = logging.getLogger(__name__)


class CirculationManager:
    """Coordinates lending and reservations between members and copies."""

    def __init__(
        self,
        db: Optional[Database] = None,
        notifier: Optional[NotificationSink] = None,
        config: Optional[Config] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize circulation manager.

        Args:
            db: Database instance
            notifier: Where notification events go (default: stored in db)
            config: Lending rules (default: loaded from environment)
            clock: Returns the current UTC time (default: system clock)
        """
        self.db = db if db is not None else get_db()
        self.config = config if config is not None else get_config()
        if notifier is None:
            notifier = NotificationManager(self.db, capacity=self.config.notification_capacity)
        self.notifier = notifier
        self.clock = clock if clock is not None else utcnow

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _get_member(self, session, member_id: str) -> Member:
        member = session.get(Member, member_id)
        if member is None:
            raise NotFoundError("member", member_id)
        return member

    def _get_copy(self, session, isbn: str) -> Copy:
        copy = session.get(Copy, isbn)
        if copy is None:
            raise NotFoundError("copy", isbn)
        return copy

    def _holder_id(self, session, isbn: str) -> Optional[str]:
        return session.execute(
            select(Loan.member_id).where(Loan.copy_isbn == isbn)
        ).scalar_one_or_none()

    def _loan_response(self, loan: Loan, now: datetime) -> LoanResponse:
        return LoanResponse.from_loan(
            loan,
            now=now,
            per_day=self.config.fine_per_day,
            due_soon_days=self.config.due_soon_days,
        )

    def _dispatch(self, events: list[NotificationEvent]) -> None:
        for event in events:
            self.notifier.notify(event.member_id, event.category, event.message, event.priority)

    # -------------------------------------------------------------------------
    # Lending
    # -------------------------------------------------------------------------

    def borrow(
        self,
        member_id: str,
        isbn: str,
        duration_days: Optional[int] = None,
    ) -> LoanResponse:
        """Lend a free copy to a member.

        If the member was queued for the copy, their reservation is
        removed.

        Args:
            member_id: Borrowing member
            isbn: Copy to borrow
            duration_days: Loan length (default: configured loan days)

        Returns:
            The new loan

        Raises:
            NotFoundError: Unknown member or copy
            UnavailableError: Someone holds the copy
            OutstandingFinesError: The member owes fines
            InvalidArgumentError: Non-positive duration
        """
        duration = self.config.loan_days if duration_days is None else duration_days
        now = self.clock()

        with self.db.get_session() as session:
            member = self._get_member(session, member_id)
            copy = self._get_copy(session, isbn)

            if self._holder_id(session, isbn) is not None:
                raise UnavailableError(isbn)

            loan = member.borrow(copy, duration, per_day=self.config.fine_per_day, now=now)
            had_reservation = ReservationQueue(copy).remove(member.id)

            session.flush()
            response = self._loan_response(loan, now)
            session.commit()

        _log.info("Member %s borrowed %s until %s", member_id, isbn, response.due_at)
        if had_reservation:
            _log.debug("Cleared reservation of %s on %s", member_id, isbn)

        self._dispatch([
            NotificationEvent(
                member_id=member_id,
                category=NotificationCategory.LOAN,
                message=f'You borrowed "{response.title}". Due {response.due_at:%Y-%m-%d}.',
                priority=NotificationPriority.LOW,
            )
        ])
        return response

    def return_copy(self, member_id: str, isbn: str) -> ReturnReceipt:
        """Take back a copy and hand it to the next queued member.

        An overdue loan's fine is locked into the member's balance. The
        head of the reservation queue is removed from the queue and
        notified; no loan is created for them, they have to borrow it
        within the (advisory) grace window.

        Args:
            member_id: Returning member
            isbn: Copy being returned

        Returns:
            ReturnReceipt

        Raises:
            NotFoundError: Unknown member or copy
            NotHeldError: The member does not hold the copy
        """
        now = self.clock()
        events = []

        with self.db.get_session() as session:
            member = self._get_member(session, member_id)
            copy = self._get_copy(session, isbn)

            outcome = member.return_copy(copy, per_day=self.config.fine_per_day, now=now)

            handed_off_to = None
            queue = ReservationQueue(copy)
            while queue:
                candidate = queue.dequeue()
                if session.get(Member, candidate) is not None:
                    handed_off_to = candidate
                    break
                _log.warning("Dropping reservation on %s for unknown member %s", isbn, candidate)

            hold_expires_at = None
            if handed_off_to is not None:
                hold_expires_at = now + timedelta(hours=self.config.hold_grace_hours)

            receipt = ReturnReceipt(
                member_id=member_id,
                isbn=isbn,
                title=copy.title,
                returned_at=now,
                days_overdue=outcome.days_overdue,
                fine_charged=outcome.fine,
                fine_balance=outcome.balance,
                handed_off_to=handed_off_to,
                hold_expires_at=hold_expires_at,
            )
            session.commit()

        _log.info("Member %s returned %s", member_id, isbn)

        if receipt.fine_charged:
            _log.info(
                "Charged %s a fine of %d (%d day(s) overdue)",
                member_id,
                receipt.fine_charged,
                receipt.days_overdue,
            )
            events.append(
                NotificationEvent(
                    member_id=member_id,
                    category=NotificationCategory.FINE,
                    message=(
                        f'Fine of {receipt.fine_charged} for "{receipt.title}" '
                        f"({receipt.days_overdue} day(s) overdue). "
                        f"Total due: {receipt.fine_balance}"
                    ),
                    priority=NotificationPriority.HIGH,
                )
            )

        if handed_off_to is not None:
            _log.info("Handed %s off to %s", isbn, handed_off_to)
            events.append(
                NotificationEvent(
                    member_id=handed_off_to,
                    category=NotificationCategory.AVAILABILITY,
                    message=(
                        f'"{receipt.title}", which you reserved, is now available. '
                        f"Please borrow it within {self.config.hold_grace_hours} hours "
                        f"(by {hold_expires_at:%Y-%m-%d %H:%M} UTC)."
                    ),
                    priority=NotificationPriority.HIGH,
                )
            )

        self._dispatch(events)
        return receipt

    def renew(
        self,
        member_id: str,
        isbn: str,
        additional_days: Optional[int] = None,
    ) -> LoanResponse:
        """Extend a member's loan.

        Args:
            member_id: Member holding the copy
            isbn: Copy on loan
            additional_days: Days to add (default: configured renewal days)

        Returns:
            The extended loan

        Raises:
            NotFoundError: Unknown member or copy
            ReservationsPendingError: Anyone is queued for the copy
            OutstandingFinesError: The member owes fines
            NotHeldError: The member does not hold the copy
            MustReturnFirstError: The loan is overdue
            InvalidArgumentError: Non-positive extension
        """
        days = self.config.renewal_days if additional_days is None else additional_days
        now = self.clock()

        with self.db.get_session() as session:
            member = self._get_member(session, member_id)
            copy = self._get_copy(session, isbn)

            queue = ReservationQueue(copy)
            if queue:
                raise ReservationsPendingError(isbn, len(queue))

            loan = member.renew(copy, days, per_day=self.config.fine_per_day, now=now)

            session.flush()
            response = self._loan_response(loan, now)
            session.commit()

        _log.info("Member %s renewed %s until %s", member_id, isbn, response.due_at)
        self._dispatch([
            NotificationEvent(
                member_id=member_id,
                category=NotificationCategory.RENEWAL,
                message=f'You renewed "{response.title}". New due date: {response.due_at:%Y-%m-%d}.',
                priority=NotificationPriority.LOW,
            )
        ])
        return response

    # -------------------------------------------------------------------------
    # Reservations
    # -------------------------------------------------------------------------

    def reserve(self, member_id: str, isbn: str) -> int:
        """Queue a member for a copy that is on loan.

        Returns:
            The member's 1-based queue position

        Raises:
            NotFoundError: Unknown member or copy
            AlreadyAvailableError: Nobody holds the copy
            AlreadyReservedError: The member is already queued
        """
        with self.db.get_session() as session:
            member = self._get_member(session, member_id)
            copy = self._get_copy(session, isbn)

            if self._holder_id(session, isbn) is None:
                raise AlreadyAvailableError(isbn)

            queue = ReservationQueue(copy)
            if member.id in queue:
                raise AlreadyReservedError(member_id, isbn)

            queue.enqueue(member.id)
            position = queue.position(member.id)
            title = copy.title
            session.commit()

        _log.info("Member %s reserved %s at position %d", member_id, isbn, position)
        self._dispatch([
            NotificationEvent(
                member_id=member_id,
                category=NotificationCategory.RESERVATION,
                message=f'You reserved "{title}". Queue position: {position}.',
                priority=NotificationPriority.MEDIUM,
            )
        ])
        return position

    def cancel_reservation(self, member_id: str, isbn: str) -> bool:
        """Withdraw a member from a copy's queue.

        Cancelling a reservation that does not exist is not an error.

        Returns:
            True if a reservation was removed

        Raises:
            NotFoundError: Unknown copy
        """
        with self.db.get_session() as session:
            copy = self._get_copy(session, isbn)
            removed = ReservationQueue(copy).remove(member_id)
            title = copy.title
            member_exists = session.get(Member, member_id) is not None
            session.commit()

        if not removed:
            _log.debug("No reservation of %s on %s to cancel", member_id, isbn)
            return False

        _log.info("Member %s cancelled reservation on %s", member_id, isbn)
        if member_exists:
            self._dispatch([
                NotificationEvent(
                    member_id=member_id,
                    category=NotificationCategory.RESERVATION,
                    message=f'You cancelled your reservation for "{title}".',
                    priority=NotificationPriority.LOW,
                )
            ])
        return True

    def queue_for(self, isbn: str) -> list[str]:
        """Member ids queued for a copy, head first."""
        with self.db.get_session() as session:
            copy = self._get_copy(session, isbn)
            return ReservationQueue(copy).member_ids()

    # -------------------------------------------------------------------------
    # Fines
    # -------------------------------------------------------------------------

    def pay_fine(self, member_id: str, amount: int) -> int:
        """Pay towards a member's locked-in fine balance.

        Returns:
            Remaining balance

        Raises:
            NotFoundError: Unknown member
            InvalidArgumentError: Non-positive amount
        """
        with self.db.get_session() as session:
            member = self._get_member(session, member_id)
            before = member.balance
            applied = member.pay_fine(amount)
            remaining = member.balance
            session.commit()

        _log.info("Member %s paid %d (applied %d), balance %d", member_id, amount, applied, remaining)
        if before > 0 and remaining == 0:
            self._dispatch([
                NotificationEvent(
                    member_id=member_id,
                    category=NotificationCategory.FINE,
                    message="All fines have been paid. You may borrow again.",
                    priority=NotificationPriority.MEDIUM,
                )
            ])
        return remaining

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def holder_of(self, isbn: str) -> Optional[str]:
        """Member currently holding a copy, if any."""
        with self.db.get_session() as session:
            self._get_copy(session, isbn)
            return self._holder_id(session, isbn)

    def is_available(self, isbn: str) -> bool:
        return self.holder_of(isbn) is None

    def available_copies(self) -> list[Copy]:
        """Copies nobody holds, ordered by title."""
        with self.db.get_session() as session:
            stmt = (
                select(Copy)
                .where(~exists().where(Loan.copy_isbn == Copy.isbn))
                .order_by(Copy.title)
            )
            copies = session.execute(stmt).scalars().all()
            for c in copies:
                session.expunge(c)
            return list(copies)

    def _copy_response(self, session, copy: Copy) -> CopyResponse:
        return CopyResponse(
            isbn=copy.isbn,
            title=copy.title,
            author=copy.author,
            author_id=copy.author_id,
            holder=self._holder_id(session, copy.isbn),
            queue_length=len(copy.reservations),
        )

    def copy_status(self, isbn: str) -> CopyResponse:
        """A copy with its holder and queue length.

        Raises:
            NotFoundError: Unknown copy
        """
        with self.db.get_session() as session:
            return self._copy_response(session, self._get_copy(session, isbn))

    def catalog_view(self, available_only: bool = False) -> list[CopyResponse]:
        """Every copy with its circulation state, ordered by title."""
        with self.db.get_session() as session:
            copies = session.execute(select(Copy).order_by(Copy.title)).scalars().all()
            view = [self._copy_response(session, copy) for copy in copies]
        if available_only:
            view = [c for c in view if c.available]
        return view

    def active_loans(self, member_id: str) -> list[LoanResponse]:
        """A member's active loans, oldest first."""
        now = self.clock()
        with self.db.get_session() as session:
            member = self._get_member(session, member_id)
            return [self._loan_response(loan, now) for loan in member.loans]

    def all_loans(self, status: Optional[LoanStatus] = None) -> list[LoanResponse]:
        """Every active loan, soonest due first, optionally filtered by status."""
        now = self.clock()
        with self.db.get_session() as session:
            loans = session.execute(select(Loan).order_by(Loan.due_at)).scalars().all()
            responses = [self._loan_response(loan, now) for loan in loans]
        if status is not None:
            responses = [r for r in responses if r.status == status]
        return responses

    def overdue_loans(self) -> list[LoanResponse]:
        return self.all_loans(LoanStatus.OVERDUE)

    def loans_due_soon(self, days: Optional[int] = None) -> list[LoanResponse]:
        """Loans not yet overdue but due within ``days`` (default: configured)."""
        threshold = self.config.due_soon_days if days is None else days
        now = self.clock()
        with self.db.get_session() as session:
            loans = session.execute(select(Loan).order_by(Loan.due_at)).scalars().all()
            return [
                self._loan_response(loan, now)
                for loan in loans
                if loan.status(now, threshold) == LoanStatus.DUE_SOON
            ]

    def read_history(self, member_id: str) -> list[HistoryEntryResponse]:
        """Copies a member has returned, in the order first read."""
        with self.db.get_session() as session:
            member = self._get_member(session, member_id)
            return [HistoryEntryResponse.model_validate(entry) for entry in member.history]

    def member_account(self, member_id: str) -> AccountSummary:
        """Fines, eligibility, loans and reservations of a member."""
        now = self.clock()
        per_day = self.config.fine_per_day
        with self.db.get_session() as session:
            member = self._get_member(session, member_id)
            reservations = session.execute(
                select(Reservation.copy_isbn)
                .where(Reservation.member_id == member_id)
                .order_by(Reservation.created_at)
            ).scalars().all()

            return AccountSummary(
                member_id=member.id,
                name=member.name,
                fine_balance=member.balance,
                outstanding_fines=member.outstanding_fines(per_day, now),
                can_borrow=member.can_borrow(per_day, now),
                active_loans=[self._loan_response(loan, now) for loan in member.loans],
                reservations=list(reservations),
                books_read=len(member.history),
            )

    def send_due_reminders(self) -> int:
        """Notify holders of overdue and due-soon loans.

        Returns:
            Number of reminders sent
        """
        now = self.clock()
        events = []

        with self.db.get_session() as session:
            loans = session.execute(select(Loan).order_by(Loan.due_at)).scalars().all()
            for loan in loans:
                status = loan.status(now, self.config.due_soon_days)
                title = loan.copy.title
                if status == LoanStatus.OVERDUE:
                    events.append(
                        NotificationEvent(
                            member_id=loan.member_id,
                            category=NotificationCategory.OVERDUE,
                            message=(
                                f'"{title}" is {loan.days_overdue(now)} day(s) overdue. '
                                f"Current fine: {loan.fine(self.config.fine_per_day, now)}"
                            ),
                            priority=NotificationPriority.HIGH,
                        )
                    )
                elif status == LoanStatus.DUE_SOON:
                    events.append(
                        NotificationEvent(
                            member_id=loan.member_id,
                            category=NotificationCategory.DUE_SOON,
                            message=f'"{title}" is due in {loan.days_remaining(now)} day(s).',
                            priority=NotificationPriority.MEDIUM,
                        )
                    )

        self._dispatch(events)
        _log.info("Sent %d due-date reminder(s)", len(events))
        return len(events)

    def get_stats(self) -> CirculationStats:
        """Get overall circulation statistics."""
        now = self.clock()
        per_day = self.config.fine_per_day
        with self.db.get_session() as session:
            total_copies = session.execute(
                select(func.count()).select_from(Copy)
            ).scalar() or 0
            total_members = session.execute(
                select(func.count()).select_from(Member)
            ).scalar() or 0
            pending_reservations = session.execute(
                select(func.count()).select_from(Reservation)
            ).scalar() or 0
            fines_outstanding = session.execute(
                select(func.coalesce(func.sum(Member.fine_balance), 0))
            ).scalar() or 0

            loans = session.execute(select(Loan)).scalars().all()
            overdue = sum(1 for loan in loans if loan.is_overdue(now))

            members = session.execute(select(Member)).scalars().all()
            members_with_fines = sum(
                1 for member in members if member.outstanding_fines(per_day, now) > 0
            )

            return CirculationStats(
                total_copies=total_copies,
                copies_on_loan=len(loans),
                copies_available=total_copies - len(loans),
                total_members=total_members,
                active_loans=len(loans),
                overdue_loans=overdue,
                pending_reservations=pending_reservations,
                members_with_fines=members_with_fines,
                fines_outstanding=fines_outstanding,
            )
