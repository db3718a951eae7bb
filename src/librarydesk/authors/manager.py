"""Author manager for registering and querying authors."""

import logging
from typing import Optional

from sqlalchemy import func, select

from ..catalog.models import Copy
from ..db.sqlite import Database, get_db
from ..errors import DuplicateError, InvalidArgumentError, NotFoundError
from .models import Author, century_bounds, reader_ids
from .schemas import AuthorCreate, AuthorResponse

_log = logging.getLogger(__name__)


class AuthorManager:
    """Manages the author registry."""

    def __init__(self, db: Optional[Database] = None):
        """Initialize author manager.

        Args:
            db: Database instance
        """
        self.db = db or get_db()

    def _find_by_name(self, session, name: str) -> Optional[Author]:
        return session.execute(
            select(Author).where(func.lower(Author.name) == name.lower())
        ).scalar_one_or_none()

    def add_author(self, data: AuthorCreate) -> Author:
        """Register an author.

        Args:
            data: Author creation data

        Returns:
            Created author

        Raises:
            DuplicateError: If an author with the same name exists
        """
        with self.db.get_session() as session:
            if self._find_by_name(session, data.name) is not None:
                raise DuplicateError(f"An author named {data.name} already exists")

            author = Author(
                name=data.name,
                biography=data.biography,
                birth_year=data.birth_year,
            )
            session.add(author)
            session.commit()
            session.refresh(author)
            session.expunge(author)
            _log.info("Registered author %s (%s)", author.name, author.id)
            return author

    def get_author(self, author_id: str) -> Optional[Author]:
        with self.db.get_session() as session:
            author = session.get(Author, author_id)
            if author:
                session.expunge(author)
            return author

    def find_author(self, name: str) -> Optional[Author]:
        """First author, by name, whose name contains the text (case insensitive)."""
        with self.db.get_session() as session:
            author = session.execute(
                select(Author)
                .where(func.lower(Author.name).like(f"%{name.lower()}%"))
                .order_by(Author.name)
                .limit(1)
            ).scalar_one_or_none()
            if author:
                session.expunge(author)
            return author

    def list_authors(self) -> list[Author]:
        """List all authors ordered by name."""
        with self.db.get_session() as session:
            authors = session.execute(select(Author).order_by(Author.name)).scalars().all()
            for a in authors:
                session.expunge(a)
            return list(authors)

    def authors_born_in_century(self, century: int) -> list[Author]:
        """Authors born in the given century, oldest first.

        Raises:
            InvalidArgumentError: If century is not positive
        """
        if century <= 0:
            raise InvalidArgumentError("Century must be positive")
        first, last = century_bounds(century)
        with self.db.get_session() as session:
            authors = session.execute(
                select(Author)
                .where(Author.birth_year.between(first, last))
                .order_by(Author.birth_year, Author.name)
            ).scalars().all()
            for a in authors:
                session.expunge(a)
            return list(authors)

    def copies_by(self, author_id: str) -> list[Copy]:
        """Catalogued copies linked to an author, ordered by title.

        Raises:
            NotFoundError: Unknown author
        """
        with self.db.get_session() as session:
            if session.get(Author, author_id) is None:
                raise NotFoundError("author", author_id)
            copies = session.execute(
                select(Copy).where(Copy.author_id == author_id).order_by(Copy.title)
            ).scalars().all()
            for c in copies:
                session.expunge(c)
            return list(copies)

    def readers_of(self, author_id: str) -> list[str]:
        """Ids of members who have returned a copy by the author.

        Raises:
            NotFoundError: Unknown author
        """
        with self.db.get_session() as session:
            author = session.get(Author, author_id)
            if author is None:
                raise NotFoundError("author", author_id)
            return reader_ids(session, author.name)

    def describe(self, author_id: str) -> AuthorResponse:
        """Author details with copy and reader counts.

        Raises:
            NotFoundError: Unknown author
        """
        with self.db.get_session() as session:
            author = session.get(Author, author_id)
            if author is None:
                raise NotFoundError("author", author_id)
            return AuthorResponse(
                id=author.id,
                name=author.name,
                biography=author.biography,
                birth_year=author.birth_year,
                copies=len(author.copies),
                readers=len(reader_ids(session, author.name)),
            )

    def remove_author(self, author_id: str) -> bool:
        """Remove an author. Linked copies keep their author name.

        Returns:
            True if deleted
        """
        with self.db.get_session() as session:
            author = session.get(Author, author_id)
            if not author:
                return False
            session.delete(author)
            session.commit()
            _log.info("Removed author %s", author_id)
            return True
