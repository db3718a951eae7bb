"""SQLAlchemy model for circulating copies.

Tables:
- copies: One row per circulating copy, keyed by ISBN, optionally linked to an author
"""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, String
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.models import Base, timestamp

if TYPE_CHECKING:
    from ..authors.models import Author
    from ..reservations.models import Reservation


class Copy(Base):
    """Copy model - a single circulating instance of a title.

    There is no "borrowed" column: a copy is on loan exactly when a
    row in ``loans`` references it.
    """

    __tablename__ = "copies"

    isbn: Mapped[str] = mapped_column(String(20), primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    author: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    # Registered author, if any; ``author`` keeps the display name either way
    author_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("authors.id", ondelete="SET NULL"),
        index=True,
    )

    created_at: Mapped[str] = mapped_column(String(32), default=timestamp)
    updated_at: Mapped[str] = mapped_column(String(32), default=timestamp, onupdate=timestamp)

    author_record: Mapped[Optional["Author"]] = relationship("Author", back_populates="copies")

    # Reservation queue, head first
    reservations: Mapped[list["Reservation"]] = relationship(
        "Reservation",
        back_populates="copy",
        order_by="Reservation.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Copy(isbn={self.isbn}, title='{self.title}')>"
