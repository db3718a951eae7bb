"""SQLAlchemy model for the author registry.

Tables:
- authors: Authors with biography and birth year
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Integer, String, Text, func, select
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.models import Base, generate_uuid, timestamp, utcnow
from ..members.models import HistoryEntry

if TYPE_CHECKING:
    from ..catalog.models import Copy


class Author(Base):
    """Author model - copies in the catalog may link to one."""

    __tablename__ = "authors"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(500), nullable=False, unique=True, index=True)
    biography: Mapped[Optional[str]] = mapped_column(Text)
    birth_year: Mapped[Optional[int]] = mapped_column(Integer, index=True)

    created_at: Mapped[str] = mapped_column(String(32), default=timestamp)
    updated_at: Mapped[str] = mapped_column(String(32), default=timestamp, onupdate=timestamp)

    copies: Mapped[list["Copy"]] = relationship(
        "Copy",
        back_populates="author_record",
        order_by="Copy.title",
    )

    def __repr__(self) -> str:
        return f"<Author(id={self.id}, name='{self.name}')>"

    def born_in_century(self, century: int) -> bool:
        """Check the birth year against a century (the 20th is 1901-2000)."""
        if self.birth_year is None:
            return False
        first, last = century_bounds(century)
        return first <= self.birth_year <= last

    def age(self, year: Optional[int] = None) -> Optional[int]:
        """Years since birth as of ``year`` (default: current year)."""
        if self.birth_year is None:
            return None
        return (year or utcnow().year) - self.birth_year

    def summary(self) -> str:
        born = f" ({self.birth_year})" if self.birth_year is not None else ""
        return f"{self.name}{born}: {self.biography or 'No biography'}"


def century_bounds(century: int) -> tuple[int, int]:
    return (century - 1) * 100 + 1, century * 100


def reader_ids(session, author_name: str) -> list[str]:
    """Members whose read history includes a copy by the author."""
    stmt = (
        select(HistoryEntry.member_id)
        .where(func.lower(HistoryEntry.author) == author_name.lower())
        .distinct()
        .order_by(HistoryEntry.member_id)
    )
    return list(session.execute(stmt).scalars().all())
