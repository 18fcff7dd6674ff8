"""
Seat model: one row per seat per show. This table is the seat ledger.

Key design decisions:
- (show_id, seat_label) is unique, so the seat map cannot be duplicated
- The tri-state status and its companion columns are pinned by CHECK
  constraints: booking_id is set iff booked, hold_owner/hold_expiry are set
  iff blocked
- Every status change goes through a conditional UPDATE
  (see app.services.seat_ledger), never read-then-write
- (status, hold_expiry) is indexed for the expiry sweep
"""

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.db.base import Base, UTCDateTime


class SeatStatus(str, enum.Enum):
    AVAILABLE = "available"
    BLOCKED = "blocked"
    BOOKED = "booked"


class Seat(Base):
    __tablename__ = "seats"

    id = Column(Integer, primary_key=True, index=True)
    show_id = Column(Integer, ForeignKey("shows.id", ondelete="CASCADE"), nullable=False)
    seat_label = Column(String(10), nullable=False)
    seat_row = Column(Integer, nullable=False)
    seat_column = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=SeatStatus.AVAILABLE.value)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)
    # Opaque user id from the identity service
    hold_owner = Column(Integer, nullable=True)
    hold_expiry = Column(UTCDateTime, nullable=True)

    show = relationship("Show", back_populates="seats")
    booking = relationship("Booking", back_populates="seats")

    __table_args__ = (
        UniqueConstraint("show_id", "seat_label", name="uq_show_seat_label"),
        CheckConstraint("status IN ('available', 'blocked', 'booked')", name="check_seat_status"),
        CheckConstraint(
            "(status = 'booked') = (booking_id IS NOT NULL)",
            name="check_seat_booking_ref",
        ),
        CheckConstraint(
            "(status = 'blocked') = (hold_owner IS NOT NULL AND hold_expiry IS NOT NULL)",
            name="check_seat_hold_fields",
        ),
        Index("ix_seats_show_position", "show_id", "seat_row", "seat_column"),
        Index("ix_seats_status_hold_expiry", "status", "hold_expiry"),
        Index("ix_seats_booking_id", "booking_id"),
    )

    def __repr__(self) -> str:
        return f"<Seat(show={self.show_id}, label={self.seat_label}, status={self.status})>"

    def effective_status(self, now) -> str:
        """A blocked seat whose hold has lapsed reads as available, swept or not."""
        if (
            self.status == SeatStatus.BLOCKED.value
            and self.hold_expiry is not None
            and self.hold_expiry < now
        ):
            return SeatStatus.AVAILABLE.value
        return self.status
