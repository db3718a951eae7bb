"""SQLAlchemy model for reservation queue entries.

Tables:
- reservations: Members waiting for a copy, ordered by position
"""

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.models import Base, generate_uuid, timestamp

if TYPE_CHECKING:
    from ..catalog.models import Copy


class Reservation(Base):
    """A member's place in a copy's reservation queue."""

    __tablename__ = "reservations"
    __table_args__ = (UniqueConstraint("copy_isbn", "member_id", name="uq_reservation_member"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    copy_isbn: Mapped[str] = mapped_column(
        String(20),
        ForeignKey("copies.isbn", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    member_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Maintained by the ordering_list on Copy.reservations (0 = head)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[str] = mapped_column(String(32), default=timestamp)

    copy: Mapped["Copy"] = relationship("Copy", back_populates="reservations")

    def __repr__(self) -> str:
        return (
            f"<Reservation(copy_isbn={self.copy_isbn}, member_id={self.member_id}, "
            f"position={self.position})>"
        )
