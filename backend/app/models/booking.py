"""
Booking model: a confirmed purchase of one or more seats for a show.

Key design decisions:
- Seats point at their booking (seats.booking_id); a booking owns every seat
  row carrying its id, so cancellation releases by booking id alone
- Status is flipped to 'cancelled' rather than deleting the row
- (user_id, idempotency_key) is unique so a retried purchase can be
  answered with the original booking; the stored request fingerprint stops
  a key from being reused for a different selection
"""

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin, UTCDateTime


class BookingStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    show_id = Column(Integer, ForeignKey("shows.id", ondelete="CASCADE"), nullable=False, index=True)
    total_amount = Column(Numeric(8, 2), nullable=False)
    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)
    cancelled_at = Column(UTCDateTime, nullable=True)
    idempotency_key = Column(String(64), nullable=True)
    # "show_id:A1,A2" of the keyed request, checked when the key is replayed
    idempotency_fingerprint = Column(String(128), nullable=True)

    user = relationship("User", back_populates="bookings")
    show = relationship("Show", back_populates="bookings")
    seats = relationship("Seat", back_populates="booking", lazy="raise")

    __table_args__ = (
        UniqueConstraint("user_id", "idempotency_key", name="uq_booking_user_idempotency_key"),
        CheckConstraint("total_amount >= 0", name="check_booking_total_non_negative"),
        CheckConstraint("status IN ('confirmed', 'cancelled')", name="check_booking_status"),
        CheckConstraint(
            "(status = 'cancelled') = (cancelled_at IS NOT NULL)",
            name="check_booking_cancelled_at",
        ),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, user={self.user_id}, show={self.show_id}, status={self.status})>"
