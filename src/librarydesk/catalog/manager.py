"""Catalog manager for copy and member registration and lookup."""

import logging
from typing import Optional

from sqlalchemy import exists, func, or_, select

from ..authors.models import Author, reader_ids
from ..config import get_config
from ..db.sqlite import Database, get_db
from ..errors import DuplicateError, NotFoundError, UnavailableError
from ..lending.models import Loan
from ..members.models import Member
from ..members.schemas import MemberCreate, MemberUpdate
from ..notifications.manager import NotificationManager
from ..notifications.schemas import NotificationCategory, NotificationPriority
from ..notifications.sink import NotificationSink
from .models import Copy
from .schemas import CopyCreate

_log = logging.getLogger(__name__)


class CatalogManager:
    """Manages the copy catalog and the member registry."""

    def __init__(
        self,
        db: Optional[Database] = None,
        notifier: Optional[NotificationSink] = None,
    ):
        """Initialize catalog manager.

        Args:
            db: Database instance
            notifier: Where new-copy notifications go (default: stored in db)
        """
        self.db = db or get_db()
        if notifier is None:
            notifier = NotificationManager(
                self.db, capacity=get_config().notification_capacity
            )
        self.notifier = notifier

    # -------------------------------------------------------------------------
    # Copies
    # -------------------------------------------------------------------------

    def add_copy(self, data: CopyCreate) -> Copy:
        """Add a copy to the catalog.

        A copy linked to a registered author notifies every member who
        has read that author before.

        Args:
            data: Copy creation data

        Returns:
            Created copy

        Raises:
            DuplicateError: If the ISBN is already catalogued
            NotFoundError: If author_id is not a registered author
        """
        with self.db.get_session() as session:
            if session.get(Copy, data.isbn) is not None:
                raise DuplicateError(f"A copy with ISBN {data.isbn} already exists")

            if data.author_id:
                author = session.get(Author, data.author_id)
                if author is None:
                    raise NotFoundError("author", data.author_id)
            else:
                author = session.execute(
                    select(Author).where(func.lower(Author.name) == data.author.lower())
                ).scalar_one_or_none()

            copy = Copy(
                isbn=data.isbn,
                title=data.title,
                author=data.author or author.name,
                author_id=author.id if author else None,
            )
            readers = reader_ids(session, author.name) if author else []
            session.add(copy)
            session.commit()
            session.refresh(copy)
            session.expunge(copy)
            _log.info("Catalogued %s (%s)", copy.isbn, copy.title)

        for member_id in readers:
            self.notifier.notify(
                member_id,
                NotificationCategory.NEW_BY_AUTHOR,
                f'New in the catalog: "{copy.title}" by {copy.author}.',
                NotificationPriority.LOW,
            )
        if readers:
            _log.debug("Told %d reader(s) about %s", len(readers), copy.isbn)
        return copy

    def get_copy(self, isbn: str) -> Optional[Copy]:
        """Get a copy by ISBN.

        Args:
            isbn: Catalog key

        Returns:
            Copy or None
        """
        with self.db.get_session() as session:
            copy = session.get(Copy, isbn)
            if copy:
                session.expunge(copy)
            return copy

    def list_copies(self) -> list[Copy]:
        """List all copies ordered by title."""
        with self.db.get_session() as session:
            copies = session.execute(select(Copy).order_by(Copy.title)).scalars().all()
            for c in copies:
                session.expunge(c)
            return list(copies)

    def search_copies(self, text: str) -> list[Copy]:
        """Find copies whose title or author contains the text (case insensitive)."""
        pattern = f"%{text.lower()}%"
        with self.db.get_session() as session:
            stmt = (
                select(Copy)
                .where(
                    or_(
                        func.lower(Copy.title).like(pattern),
                        func.lower(Copy.author).like(pattern),
                    )
                )
                .order_by(Copy.title)
            )
            copies = session.execute(stmt).scalars().all()
            for c in copies:
                session.expunge(c)
            return list(copies)

    def remove_copy(self, isbn: str) -> bool:
        """Remove a copy from the catalog.

        Pending reservations for the copy are dropped with it.

        Returns:
            True if deleted

        Raises:
            UnavailableError: If the copy is on loan
        """
        with self.db.get_session() as session:
            copy = session.get(Copy, isbn)
            if not copy:
                return False

            on_loan = session.execute(
                select(exists().where(Loan.copy_isbn == isbn))
            ).scalar()
            if on_loan:
                raise UnavailableError(isbn)

            session.delete(copy)
            session.commit()
            _log.info("Removed copy %s from catalog", isbn)
            return True

    # -------------------------------------------------------------------------
    # Members
    # -------------------------------------------------------------------------

    def register_member(self, data: MemberCreate) -> Member:
        """Register a new member.

        Args:
            data: Member creation data

        Returns:
            Created member

        Raises:
            DuplicateError: If the member id is already taken
        """
        with self.db.get_session() as session:
            if data.id and session.get(Member, data.id) is not None:
                raise DuplicateError(f"A member with id {data.id} already exists")

            member = Member(
                name=data.name,
                email=data.email,
                phone=data.phone,
                fine_balance=0,
            )
            if data.id:
                member.id = data.id
            session.add(member)
            session.commit()
            session.refresh(member)
            session.expunge(member)
            _log.info("Registered member %s (%s)", member.id, member.name)
            return member

    def get_member(self, member_id: str) -> Optional[Member]:
        """Get a member by ID.

        Args:
            member_id: Member ID

        Returns:
            Member or None
        """
        with self.db.get_session() as session:
            member = session.get(Member, member_id)
            if member:
                session.expunge(member)
            return member

    def find_members(self, name: str) -> list[Member]:
        """Find members whose name contains the text (case insensitive)."""
        with self.db.get_session() as session:
            stmt = (
                select(Member)
                .where(func.lower(Member.name).like(f"%{name.lower()}%"))
                .order_by(Member.name)
            )
            members = session.execute(stmt).scalars().all()
            for m in members:
                session.expunge(m)
            return list(members)

    def list_members(self) -> list[Member]:
        """List all members ordered by name."""
        with self.db.get_session() as session:
            members = session.execute(select(Member).order_by(Member.name)).scalars().all()
            for m in members:
                session.expunge(m)
            return list(members)

    def update_member(self, member_id: str, data: MemberUpdate) -> Optional[Member]:
        """Update a member's contact details.

        Args:
            member_id: Member ID
            data: Update data

        Returns:
            Updated member or None
        """
        with self.db.get_session() as session:
            member = session.get(Member, member_id)
            if not member:
                return None

            update_data = data.model_dump(exclude_unset=True)
            for field, value in update_data.items():
                if hasattr(member, field):
                    setattr(member, field, value)

            session.commit()
            session.refresh(member)
            session.expunge(member)
            return member
